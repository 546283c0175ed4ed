"""
Telegram entry point for KwentaKo

Run from the repository root:

    python app/main.py

Users chat with the bot like they would jot expenses on paper:
"Lunch at Jollibee ₱185, Taxi to meeting 250, bought new pens 500".
Each message is extracted by Gemini and appended to the Google Sheet.

Configuration comes from the environment / .env file:
    TELEGRAM_BOT_TOKEN, GEMINI_API_KEY,
    GOOGLE_SHEETS_CREDENTIALS_PATH, GOOGLE_SHEETS_SPREADSHEET_ID
Set TELEGRAM_WEBHOOK_URL to receive updates by webhook instead of polling.
"""

from kwentako.bot.telegram_app import run


if __name__ == "__main__":
    run()
