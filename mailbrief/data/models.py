from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class OperationKind(str, Enum):
    SUMMARIZE = "summarize"
    EXTRACT_TASKS = "extract_tasks"
    SUGGEST_TERMS = "suggest_terms"


class AdmissionOutcome(str, Enum):
    ADMITTED = "admitted"
    ALREADY_CACHED = "already_cached"
    ALREADY_IN_FLIGHT = "already_in_flight"
    QUEUE_FULL = "queue_full"
    NOT_FOUND = "not_found"


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Fingerprint(BaseModel):
    """(account, message) pair: the dedup key and the cache key."""
    model_config = ConfigDict(frozen=True)

    account_id: str
    message_id: str

    def __str__(self) -> str:
        return f"{self.account_id}/{self.message_id}"


class MessageContent(BaseModel):
    subject: str = ""
    body: str = ""


class SummaryJob(BaseModel):
    """One unit of summarization work. Created by intake, consumed once by a worker."""
    model_config = ConfigDict(frozen=True)

    account_id: str
    message_id: str
    subject: str = ""
    body: str = ""

    @property
    def fingerprint(self) -> Fingerprint:
        return Fingerprint(account_id=self.account_id, message_id=self.message_id)

    def prompt_text(self, max_chars: int) -> str:
        text = f"Subject: {self.subject}\n\nBody: {self.body}"
        return text[:max_chars]

    @classmethod
    def from_message(cls, fingerprint: Fingerprint, message: MessageContent) -> "SummaryJob":
        return cls(
            account_id=fingerprint.account_id,
            message_id=fingerprint.message_id,
            subject=message.subject,
            body=message.body,
        )


class SummaryRecord(BaseModel):
    account_id: str
    email_id: str
    summary: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TaskExtraction(BaseModel):
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM


class BatchResult(BaseModel):
    """What the client sees right away: known summaries plus how many were queued."""
    cached: Dict[str, str] = Field(default_factory=dict)
    queued_count: int = 0
