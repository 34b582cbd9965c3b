from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WhatsAppText(BaseModel):
    body: str


class WhatsAppContactProfile(BaseModel):
    name: Optional[str] = None


class WhatsAppContact(BaseModel):
    wa_id: str
    profile: Optional[WhatsAppContactProfile] = None


class WhatsAppMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_number: str = Field(alias="from")
    timestamp: Optional[str] = None
    type: str = "text"
    text: Optional[WhatsAppText] = None


class WhatsAppStatus(BaseModel):
    id: str
    status: str
    timestamp: Optional[str] = None
    recipient_id: Optional[str] = None


class WhatsAppChangeValue(BaseModel):
    messaging_product: Optional[str] = None
    contacts: list[WhatsAppContact] = []
    messages: list[WhatsAppMessage] = []
    statuses: list[WhatsAppStatus] = []


class WhatsAppChange(BaseModel):
    field: Optional[str] = None
    value: WhatsAppChangeValue


class WhatsAppEntry(BaseModel):
    id: Optional[str] = None
    changes: list[WhatsAppChange] = []


class WhatsAppWebhookPayload(BaseModel):
    object: Optional[str] = None
    entry: list[WhatsAppEntry] = []

    def text_messages(self) -> list[WhatsAppMessage]:
        return [
            message
            for entry in self.entry
            for change in entry.changes
            for message in change.value.messages
            if message.type == "text" and message.text is not None
        ]

    def status_count(self) -> int:
        return sum(len(change.value.statuses) for entry in self.entry for change in entry.changes)


class WebhookResponse(BaseModel):
    success: bool
    processed: int = 0
    duplicates: int = 0
    failed: int = 0
    statuses: int = 0
