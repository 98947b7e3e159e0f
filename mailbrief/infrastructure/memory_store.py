"""
In-process store used when Supabase is not configured (development/demo)
and by the test suite. Nothing survives a restart.
"""

import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Tuple

from mailbrief.data.models import MessageContent, SummaryRecord
from mailbrief.infrastructure.contracts import MessageLookup, SummaryStore


class MemoryStore(SummaryStore, MessageLookup):

    def __init__(self):
        self._lock = threading.Lock()
        self._summaries: Dict[Tuple[str, str], SummaryRecord] = {}
        self._messages: Dict[Tuple[str, str], MessageContent] = {}

    def add_message(self, account_id: str, email_id: str, subject: str = "", body: str = "") -> None:
        with self._lock:
            self._messages[(account_id, email_id)] = MessageContent(subject=subject, body=body)

    def get_message(self, account_id: str, email_id: str) -> Optional[MessageContent]:
        with self._lock:
            return self._messages.get((account_id, email_id))

    def get_cached(self, account_id: str, email_ids: Iterable[str]) -> Dict[str, str]:
        with self._lock:
            return {
                email_id: self._summaries[(account_id, email_id)].summary
                for email_id in email_ids
                if (account_id, email_id) in self._summaries
            }

    def get_summary(self, account_id: str, email_id: str) -> Optional[SummaryRecord]:
        with self._lock:
            return self._summaries.get((account_id, email_id))

    def put(self, account_id: str, email_id: str, summary: str) -> None:
        with self._lock:
            self._summaries[(account_id, email_id)] = SummaryRecord(
                account_id=account_id,
                email_id=email_id,
                summary=summary,
                created_at=datetime.now(timezone.utc),
            )

    def delete(self, account_id: str, email_id: str) -> None:
        with self._lock:
            self._summaries.pop((account_id, email_id), None)
