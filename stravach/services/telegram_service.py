import html
from typing import Optional

import httpx

from stravach.logging_config import get_logger
from stravach.services.callback_codec import CallbackAction, encode_callback

logger = get_logger("telegram_service")

BUTTONS_PER_ROW = 3
REGENERATE_LABEL = "🔄 Regenerate"
CUSTOM_PROMPT_LABEL = "✏️ Custom"


class TelegramService:
    """Service for sending messages to Telegram."""

    BASE_URL = "https://api.telegram.org/bot{token}"

    def __init__(self, bot_token: str, timeout_seconds: float = 30.0):
        self.bot_token = bot_token
        self.base_url = self.BASE_URL.format(token=bot_token)
        self.timeout_seconds = timeout_seconds

    def _make_request(self, method: str, data: Optional[dict] = None) -> dict:
        """Make request to Telegram API."""
        url = f"{self.base_url}/{method}"
        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.post(url, json=data or {})
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Telegram API error: {e}")
            return {"ok": False, "error": str(e)}

        if not result.get("ok"):
            logger.warning(f"Telegram {method} failed: {result.get('description')}")
        return result

    def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: Optional[dict] = None,
        parse_mode: Optional[str] = "HTML",
    ) -> dict:
        """Send message to Telegram chat."""
        data = {
            "chat_id": chat_id,
            "text": text,
        }
        if parse_mode:
            data["parse_mode"] = parse_mode
        if reply_markup:
            data["reply_markup"] = reply_markup

        return self._make_request("sendMessage", data)

    def answer_callback_query(self, callback_query_id: str, text: Optional[str] = None) -> dict:
        """Stop the loading spinner on the tapped button."""
        data = {"callback_query_id": callback_query_id}
        if text:
            data["text"] = text
        return self._make_request("answerCallbackQuery", data)


def build_name_buttons(activity_id: int, option_count: int) -> dict:
    """Inline keyboard: numbered buttons in rows of three, then regenerate and custom prompt."""
    rows = []
    row = []
    for index in range(1, option_count + 1):
        row.append({"text": str(index), "callback_data": encode_callback(activity_id, index)})
        if len(row) == BUTTONS_PER_ROW:
            rows.append(row)
            row = []
    if row:
        rows.append(row)

    rows.append(
        [
            {"text": REGENERATE_LABEL, "callback_data": encode_callback(activity_id, CallbackAction.REGENERATE)},
            {"text": CUSTOM_PROMPT_LABEL, "callback_data": encode_callback(activity_id, CallbackAction.CUSTOM_PROMPT)},
        ]
    )
    return {"inline_keyboard": rows}


def format_names_message(activity_name: Optional[str], names: list[str]) -> str:
    """Numbered list matching the button indices."""
    lines = [f"{index}. {html.escape(name)}" for index, name in enumerate(names, start=1)]
    lines.append(f"0. {REGENERATE_LABEL}")
    lines.append("C. ✏️ Enter custom prompt")

    header = "<b>Select a number with new name</b>"
    if activity_name:
        header += f" for <i>{html.escape(activity_name)}</i>"
    return f"{header}:\n\n" + "\n".join(lines)
