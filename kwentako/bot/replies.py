"""
User-facing reply texts.

Plain text only: Telegram's Markdown parser rejects unbalanced
characters that routinely show up in expense descriptions.
"""

from typing import Optional

from kwentako.models.expense import DocumentLocation, ExpenseSummary, SaveResult

GUIDANCE = (
    "Send me your expenses and I'll log them for you.\n\n"
    "Example: \"Lunch at Jollibee ₱185, Taxi to meeting 250, bought new pens 500\"\n\n"
    "Currency is assumed to be Philippine Peso (₱) unless you say otherwise."
)

NOTHING_EXTRACTED = (
    "AI could not extract any expenses. Please try a different phrasing, "
    "specifying the amount clearly."
)

SAVE_FAILED = "Error saving data. Your expense was not recorded, please try again in a moment."

STATISTICS_FAILED = "Could not read your expense log right now. Please try again later."

GENERIC_FAILURE = "Something went wrong while processing your message. Please try again."

FALLBACK_NOTICE = (
    "⚠️ Gemini is busy right now, so I used a simple parser. "
    "Please double-check the amount and category."
)


def _money(symbol: str, amount) -> str:
    return f"{symbol}{amount:,.2f}"


def links(location: Optional[DocumentLocation]) -> str:
    if location is None:
        return ""
    return (
        f"\n\n📄 View online: {location.view_url}"
        f"\n📥 Download: {location.download_url}"
    )


def confirmation(result: SaveResult, currency_symbol: str = "₱") -> str:
    """Saved N items, their subtotal, the running total and the document links."""
    lines = []
    if result.used_fallback:
        lines.append(FALLBACK_NOTICE)
        lines.append("")

    lines.append(
        f"✅ Saved {result.new_count} item{'s' if result.new_count != 1 else ''}. "
        f"Subtotal: {_money(currency_symbol, result.new_subtotal)}"
    )
    lines.append(
        f"Running total: {_money(currency_symbol, result.grand_total)} "
        f"across {result.total_count} record{'s' if result.total_count != 1 else ''}"
    )
    return "\n".join(lines) + links(result.location)


def with_detail(message: str, error: BaseException, debug: bool) -> str:
    """Append the underlying error only in debug mode."""
    if not debug:
        return message
    return f"{message}\n\n[debug] {type(error).__name__}: {error}"


def not_configured(missing: list[str]) -> str:
    services = ", ".join(sorted(missing)) or "unknown"
    return (
        "The bot is not fully configured yet "
        f"(unavailable: {services}). Please contact the administrator."
    )


def statistics(
    summary: ExpenseSummary,
    location: Optional[DocumentLocation],
    currency_symbol: str = "₱",
    creator_name: Optional[str] = None,
) -> str:
    report = summary.to_report(
        currency_symbol=currency_symbol,
        creator_name=creator_name,
    )
    return report + links(location)
