from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None


class TelegramChat(BaseModel):
    id: int
    type: str  # private, group, supergroup, channel
    title: Optional[str] = None
    username: Optional[str] = None


class TelegramMessage(BaseModel):
    message_id: int
    date: int
    chat: TelegramChat
    from_user: Optional[TelegramUser] = None  # "from" is reserved in Python
    text: Optional[str] = None
    reply_to_message: Optional[Any] = None

    model_config = ConfigDict(populate_by_name=True)

    def __init__(self, **data):
        # Handle "from" -> "from_user" mapping
        if "from" in data:
            data["from_user"] = data.pop("from")
        super().__init__(**data)


class TelegramCallbackQuery(BaseModel):
    id: str
    from_user: TelegramUser
    message: Optional[TelegramMessage] = None
    data: Optional[str] = None  # callback_data from button

    def __init__(self, **data):
        if "from" in data:
            data["from_user"] = data.pop("from")
        super().__init__(**data)

    @property
    def chat_id(self) -> int:
        """Chat the button was shown in; private chats share the user's id."""
        if self.message is not None:
            return self.message.chat.id
        return self.from_user.id


class TelegramUpdate(BaseModel):
    update_id: int
    message: Optional[TelegramMessage] = None
    callback_query: Optional[TelegramCallbackQuery] = None


class TelegramWebhookResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    error_code: Optional[str] = None
