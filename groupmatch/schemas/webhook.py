from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _coerce_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class WebhookChat(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value):
        return _coerce_id(value)


class WebhookMedia(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: Optional[str] = None
    content_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("contentType", "content_type"))


class WebhookMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    content: Optional[str] = ""
    media: Optional[WebhookMedia] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value):
        return _coerce_id(value)

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, value):
        return "" if value is None else str(value)


class WebhookAgent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value):
        return _coerce_id(value)


class WebhookRequest(BaseModel):
    """Inbound message webhook from the chat platform."""

    model_config = ConfigDict(extra="allow")

    event: Optional[str] = None
    chat: Optional[WebhookChat] = None
    message: Optional[WebhookMessage] = None
    agent: Optional[WebhookAgent] = None


class ChatUser(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("userName", "user_name", "name"))
    is_anonymous: bool = Field(default=True, validation_alias=AliasChoices("isAnonymous", "is_anonymous"))


class ChatMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    chat_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("chatId", "chat_id"))
    user: Optional[ChatUser] = None

    @field_validator("chat_id", mode="before")
    @classmethod
    def _id(cls, value):
        return _coerce_id(value)


class ChatStartedRequest(BaseModel):
    """`chat.started` event sent when a user opens a chat with an agent."""

    model_config = ConfigDict(extra="allow")

    event: str = "chat.started"
    chat_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("chatId", "chat_id"))
    chat_metadata: Optional[ChatMetadata] = Field(
        default=None, validation_alias=AliasChoices("chatMetadata", "chat_metadata")
    )
    user: Optional[ChatUser] = None

    @field_validator("chat_id", mode="before")
    @classmethod
    def _id(cls, value):
        return _coerce_id(value)

    def resolved_chat_id(self) -> Optional[str]:
        if self.chat_id:
            return self.chat_id
        return self.chat_metadata.chat_id if self.chat_metadata else None

    def resolved_user(self) -> Optional[ChatUser]:
        if self.user:
            return self.user
        return self.chat_metadata.user if self.chat_metadata else None


class WebhookResponse(BaseModel):
    success: bool
    agent: Optional[str] = None
    processing: Optional[bool] = None
    skipped: Optional[bool] = None
    reason: Optional[str] = None
    message_id: Optional[str] = Field(default=None, serialization_alias="messageId")
    event: Optional[str] = None
    welcome_message_sent: Optional[bool] = Field(default=None, serialization_alias="welcomeMessageSent")
    user_name: Optional[str] = Field(default=None, serialization_alias="userName")
    error: Optional[str] = None
    warnings: Optional[List[str]] = None

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
