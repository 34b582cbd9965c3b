from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class InboundMessage(BaseModel):
    sender_id: str = Field(min_length=1)
    text: str = ""
    delivery_id: Optional[str] = None
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MessageResponse(BaseModel):
    success: bool
    route: Optional[str] = None
    reply: Optional[str] = None
    session_id: Optional[UUID] = None
    error_code: Optional[str] = None
