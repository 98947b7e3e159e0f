"""
Collaborator contracts consumed by the summary pipeline.

Stores and lookups are synchronous (the Supabase client is blocking);
the pipeline calls them through asyncio.to_thread. Notifiers are async
and must never raise.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

from mailbrief.data.models import MessageContent, SummaryRecord


class SummaryStore(ABC):
    """Durable summary cache keyed by (account_id, email_id)."""

    @abstractmethod
    def get_cached(self, account_id: str, email_ids: Iterable[str]) -> Dict[str, str]:
        """Return email_id -> summary text for the ids that have a record."""

    @abstractmethod
    def get_summary(self, account_id: str, email_id: str) -> Optional[SummaryRecord]:
        pass

    @abstractmethod
    def put(self, account_id: str, email_id: str, summary: str) -> None:
        """Idempotent upsert; last write wins."""

    @abstractmethod
    def delete(self, account_id: str, email_id: str) -> None:
        """Invalidate a record, e.g. after the message content changed."""


class MessageLookup(ABC):
    @abstractmethod
    def get_message(self, account_id: str, email_id: str) -> Optional[MessageContent]:
        """Return subject and body, or None if the message does not exist."""


class Notifier(ABC):
    @abstractmethod
    async def notify(self, account_id: str, event: str, data: Dict[str, Any]) -> None:
        """Best-effort push to the account's open sessions. Returns immediately."""
