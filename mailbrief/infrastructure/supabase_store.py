import logging
import os
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from supabase import create_client

from mailbrief.data.models import MessageContent, SummaryRecord
from mailbrief.infrastructure.contracts import MessageLookup, SummaryStore

logger = logging.getLogger(__name__)

SUMMARY_TABLE = "email_summaries"
EMAIL_TABLE = "emails"


class SupabaseStore(SummaryStore, MessageLookup):
    """
    Summary cache and message lookup backed by Supabase.

    email_summaries: (account_id, email_id) unique, summary text, created_at
    emails:          (account_id, gmail_message_id) unique, subject, body
    """

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None, client=None):
        if client is not None:
            self.client = client
            return

        self.url = url or os.getenv("SUPABASE_URL")
        self.key = key or os.getenv("SUPABASE_SERVICE_KEY")

        if not self.url or not self.key:
            raise RuntimeError("Supabase environment variables missing")

        self.client = create_client(self.url, self.key)

    def get_cached(self, account_id: str, email_ids: Iterable[str]) -> Dict[str, str]:
        ids = list(dict.fromkeys(email_ids))
        if not ids:
            return {}

        response = self.client.table(SUMMARY_TABLE) \
            .select("email_id,summary") \
            .eq("account_id", account_id) \
            .in_("email_id", ids) \
            .execute()

        return {row["email_id"]: row["summary"] for row in (response.data or [])}

    def get_summary(self, account_id: str, email_id: str) -> Optional[SummaryRecord]:
        response = self.client.table(SUMMARY_TABLE) \
            .select("account_id,email_id,summary,created_at") \
            .eq("account_id", account_id) \
            .eq("email_id", email_id) \
            .limit(1) \
            .execute()

        if response.data:
            return SummaryRecord(**response.data[0])
        return None

    def put(self, account_id: str, email_id: str, summary: str) -> None:
        self.client.table(SUMMARY_TABLE).upsert({
            "account_id": account_id,
            "email_id": email_id,
            "summary": summary,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }, on_conflict="account_id,email_id").execute()

        logger.info(f"[STORE] Summary written for {account_id}/{email_id}")

    def delete(self, account_id: str, email_id: str) -> None:
        self.client.table(SUMMARY_TABLE) \
            .delete() \
            .eq("account_id", account_id) \
            .eq("email_id", email_id) \
            .execute()

    def get_message(self, account_id: str, email_id: str) -> Optional[MessageContent]:
        """Fetch subject and body, selecting only the columns the summarizer needs."""
        response = self.client.table(EMAIL_TABLE) \
            .select("subject,body") \
            .eq("account_id", account_id) \
            .eq("gmail_message_id", email_id) \
            .limit(1) \
            .execute()

        if not response.data:
            return None
        row = response.data[0]
        return MessageContent(subject=row.get("subject") or "", body=row.get("body") or "")
