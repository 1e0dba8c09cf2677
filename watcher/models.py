"""
Pydantic models for stored snapshots and outgoing notifications.
"""

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotRecord(BaseModel):
    """
    One stored page snapshot, keyed by source id.
    Field aliases match the documents of the `doms` collection.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Source identifier used as the snapshot key")
    dom: str = Field(..., description="Serialized outer HTML of the page")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    def to_mongo(self) -> dict:
        return self.model_dump(by_alias=True)


class Notification(BaseModel):
    """An e-mail built for one detected change. Never persisted."""
    subject: str = Field(..., description="Localized subject line")
    html_body: str = Field(..., description="HTML body produced by delta extraction")
    recipients: List[str] = Field(default_factory=list)

    @field_validator("subject")
    @classmethod
    def validate_subject(cls, v):
        """Ensure the subject is not blank."""
        if not v.strip():
            raise ValueError("subject cannot be blank")
        return v
