from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WhatsAppText(BaseModel):
    body: Optional[str] = None


class WhatsAppMessage(BaseModel):
    from_user: str = Field(alias="from")  # "from" is reserved in Python
    id: Optional[str] = None
    timestamp: Optional[str] = None
    type: str = "text"
    text: Optional[WhatsAppText] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WhatsAppValue(BaseModel):
    messaging_product: Optional[str] = None
    messages: list[WhatsAppMessage] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class WhatsAppChange(BaseModel):
    field: Optional[str] = None
    value: Optional[WhatsAppValue] = None


class WhatsAppEntry(BaseModel):
    id: Optional[str] = None
    changes: list[WhatsAppChange] = Field(default_factory=list)


class WhatsAppWebhookPayload(BaseModel):
    object: Optional[str] = None
    entry: list[WhatsAppEntry] = Field(default_factory=list)

    def first_message(self) -> Optional[WhatsAppMessage]:
        """entry[0].changes[0].value.messages[0], or None anywhere along the path."""
        if not self.entry or not self.entry[0].changes:
            return None
        value = self.entry[0].changes[0].value
        if value is None or not value.messages:
            return None
        return value.messages[0]


class InboundMessage(BaseModel):
    sender_id: str
    text: str

    @classmethod
    def from_payload(cls, payload: WhatsAppWebhookPayload) -> Optional["InboundMessage"]:
        """Text messages only; status updates and media are ignored."""
        message = payload.first_message()
        if message is None or message.text is None or not message.text.body:
            return None
        text = message.text.body.strip()
        if not text or not message.from_user:
            return None
        return cls(sender_id=message.from_user, text=text)


class WebhookAck(BaseModel):
    status: str = "received"
