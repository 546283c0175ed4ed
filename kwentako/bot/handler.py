"""
Top-level message handler.

Turns one inbound Telegram text message into exactly one BotReply
(or None for a re-delivered message that was already answered).

DESIGN DECISION: handle() never raises. Every failure class maps to a
reply here, so the Telegram layer only has to send what it gets back.
"""

from collections import OrderedDict
from typing import Hashable, Optional
from uuid import UUID

from kwentako.agents import EmptyInputError
from kwentako.audit import create_correlation_id
from kwentako.bot import replies
from kwentako.bot.filters import rejection_reason
from kwentako.models.audit import AuditEventBuilder
from kwentako.models.expense import BotReply, InboundMessage
from kwentako.orchestrator import AppComponents
from kwentako.services.storage import StorageError


class RecentMessageCache:
    """
    Fixed-capacity set of recently seen message keys.

    Telegram re-delivers a webhook update when our answer is slow;
    remembering recent (chat_id, message_id) pairs keeps one message
    from being logged twice. Oldest entries are evicted first.
    """

    def __init__(self, capacity: int = 256):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._keys: OrderedDict[Hashable, None] = OrderedDict()

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._keys

    def check_and_add(self, key: Hashable) -> bool:
        """Record the key; True if it had already been seen."""
        if key in self._keys:
            return True
        self._keys[key] = None
        if len(self._keys) > self._capacity:
            self._keys.popitem(last=False)
        return False


class ExpenseMessageHandler:
    """
    Filters, de-duplicates and records inbound expense messages.

    GUARANTEES:
    - One reply per new message, whatever fails
    - No reply for a duplicate delivery
    - Internal error details only reach the user in debug mode
    """

    def __init__(
        self,
        components: AppComponents,
        cache: Optional[RecentMessageCache] = None,
    ):
        self._components = components
        self._settings = components.app_settings
        self._audit_logger = components.audit_logger
        self._cache = cache or RecentMessageCache(self._settings.dedup_cache_size)

    def _not_configured(self) -> BotReply:
        return BotReply(
            text=replies.not_configured(list(self._components.unavailable)),
            is_error=True,
        )

    def _failure(self, message: str, error: Exception) -> BotReply:
        return BotReply(
            text=replies.with_detail(message, error, self._settings.debug_mode),
            is_error=True,
        )

    async def handle(self, message: InboundMessage) -> Optional[BotReply]:
        """Process one inbound message and return the reply to send."""
        correlation_id = create_correlation_id()

        if self._cache.check_and_add(message.dedup_key):
            self._audit_logger.log(AuditEventBuilder.duplicate_suppressed(
                chat_id=message.chat_id,
                message_id=message.message_id,
                correlation_id=correlation_id,
            ))
            return None

        self._audit_logger.log_message_received(
            chat_id=message.chat_id,
            message_id=message.message_id,
            text_length=len(message.text or ""),
            correlation_id=correlation_id,
        )

        reason = rejection_reason(message.text)
        if reason is not None:
            self._audit_logger.log(AuditEventBuilder.message_ignored(reason, correlation_id))
            return BotReply(text=replies.GUIDANCE)

        return await self._record(message.text, correlation_id)

    async def _record(self, text: str, correlation_id: UUID) -> BotReply:
        flow = self._components.flow
        if flow is None:
            return self._not_configured()

        try:
            result = await flow.record_expenses(text, correlation_id=correlation_id)
        except EmptyInputError as e:
            self._audit_logger.log(AuditEventBuilder.input_rejected(str(e), correlation_id))
            return BotReply(text=replies.GUIDANCE)
        except StorageError as e:
            self._audit_logger.log(AuditEventBuilder.save_failed(str(e), correlation_id))
            return self._failure(replies.SAVE_FAILED, e)
        except Exception as e:
            self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return self._failure(replies.GENERIC_FAILURE, e)

        if result.new_count == 0:
            return BotReply(text=replies.NOTHING_EXTRACTED)

        return BotReply(text=replies.confirmation(result, self._settings.currency_symbol))

    async def statistics(self) -> BotReply:
        """
        The lifetime statistics report plus links to the document.

        Library entry point: build_application does not route any chat
        command here, so embedders wire it to their own trigger.
        """
        flow = self._components.flow
        if flow is None:
            return self._not_configured()

        correlation_id = create_correlation_id()
        try:
            summary, location = await flow.get_statistics(correlation_id=correlation_id)
        except Exception as e:
            self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return self._failure(replies.STATISTICS_FAILED, e)

        return BotReply(text=replies.statistics(
            summary,
            location,
            currency_symbol=self._settings.currency_symbol,
            creator_name=self._settings.creator_name,
        ))
