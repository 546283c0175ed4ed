"""
Telegram wiring.

Only the glue between python-telegram-bot and ExpenseMessageHandler
lives here: converting updates, sending the single reply, and starting
the bot in polling or webhook mode.
"""

from typing import Awaitable, Callable, Optional

import structlog
from telegram import Update
from telegram.ext import Application, ApplicationBuilder, ContextTypes, MessageHandler, filters

from kwentako.audit import configure_logging
from kwentako.bot import replies
from kwentako.bot.handler import ExpenseMessageHandler
from kwentako.config import get_settings
from kwentako.models.expense import InboundMessage
from kwentako.orchestrator import create_app_components

logger = structlog.get_logger(__name__)


class ReplyOnce:
    """
    Wraps a send function so at most one reply goes out per update.

    `sent` flips before the send is awaited: if the send itself fails,
    the error handler must not try a second reply for the same message.
    """

    def __init__(self, send: Callable[[str], Awaitable[object]]):
        self._send = send
        self.sent = False

    async def __call__(self, text: str) -> bool:
        if self.sent:
            logger.warning("duplicate_reply_suppressed")
            return False
        self.sent = True
        await self._send(text)
        return True


def to_inbound(update: Update) -> Optional[InboundMessage]:
    message = update.effective_message
    if message is None:
        return None
    return InboundMessage(
        sender_id=update.effective_user.id if update.effective_user else 0,
        chat_id=message.chat_id,
        message_id=message.message_id,
        text=message.text,
    )


def build_application(token: str, handler: ExpenseMessageHandler) -> Application:
    """Create the bot with one handler for text and one for everything else."""

    async def on_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        inbound = to_inbound(update)
        if inbound is None:
            return
        reply_once = ReplyOnce(update.effective_message.reply_text)
        try:
            reply = await handler.handle(inbound)
            if reply is not None:
                await reply_once(reply.text)
        except Exception:
            logger.exception(
                "update_handling_failed",
                chat_id=inbound.chat_id,
                message_id=inbound.message_id,
            )
            if not reply_once.sent:
                await reply_once(replies.GENERIC_FAILURE)

    async def on_other(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_message is not None:
            await update.effective_message.reply_text(replies.GUIDANCE)

    application = ApplicationBuilder().token(token).concurrent_updates(True).build()
    application.add_handler(MessageHandler(filters.TEXT, on_text))
    application.add_handler(MessageHandler(~filters.TEXT & ~filters.StatusUpdate.ALL, on_other))
    return application


def run() -> None:
    """Console entry point: build components and start the bot."""
    settings = get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)

    components = create_app_components(settings)
    if not components.is_available:
        logger.error("components_unavailable", unavailable=components.unavailable)

    telegram = settings.telegram
    application = build_application(telegram.bot_token, ExpenseMessageHandler(components))

    if telegram.webhook_url:
        logger.info("starting_webhook", port=telegram.listen_port)
        application.run_webhook(
            listen="0.0.0.0",
            port=telegram.listen_port,
            webhook_url=telegram.webhook_url,
            secret_token=telegram.webhook_secret,
            allowed_updates=Update.ALL_TYPES,
        )
    else:
        logger.info("starting_polling")
        application.run_polling(allowed_updates=Update.ALL_TYPES)
