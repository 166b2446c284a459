"""
Persisted content records.

Field names are snake_case in Python and camelCase on the wire
(``userId``, ``createdAt``) to match the browser client.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class NoteRecord(WireModel):
    id: str
    user_id: str
    title: str
    subject: Optional[str] = None
    topic: Optional[str] = None
    content: str
    prompt: str
    created_at: datetime
    updated_at: datetime


class PracticePaperRecord(WireModel):
    id: str
    user_id: str
    title: str
    subject: str
    topic: str
    difficulty: str
    content: str
    prompt: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SummaryRecord(WireModel):
    id: str
    user_id: str
    original_text_length: int
    summary_length: int
    style: str
    length: str
    content: str
    created_at: datetime
    updated_at: datetime


class SubscriptionView(WireModel):
    plan: str
    quota_limit: int
    quota_used: int
    valid_until: Optional[datetime] = None


class UserRecord(WireModel):
    id: str
    email: str
    name: str
    created_at: datetime
    updated_at: datetime
    subscription: Optional[SubscriptionView] = None
