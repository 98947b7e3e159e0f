"""
Summary intake and dedup gate.

Decides, without ever blocking on the queue, whether a summarization
request becomes a job: cached results and in-flight fingerprints are
rejected, and a full queue is reported back as backpressure.
"""

import asyncio
import logging
from typing import Iterable

from mailbrief.data.models import AdmissionOutcome, BatchResult, Fingerprint, SummaryJob
from mailbrief.infrastructure.contracts import MessageLookup, SummaryStore
from mailbrief.infrastructure.in_flight import InFlightSet
from mailbrief.infrastructure.summary_worker import SummaryWorkerPool

logger = logging.getLogger(__name__)


class SummaryIntake:

    def __init__(
        self,
        store: SummaryStore,
        messages: MessageLookup,
        in_flight: InFlightSet,
        pool: SummaryWorkerPool,
    ):
        self.store = store
        self.messages = messages
        self.in_flight = in_flight
        self.pool = pool

    async def submit(self, job: SummaryJob) -> AdmissionOutcome:
        """Single-item admission: cache check, then dedup, then a non-blocking push."""
        cached = await asyncio.to_thread(self.store.get_cached, job.account_id, [job.message_id])
        if job.message_id in cached:
            return AdmissionOutcome.ALREADY_CACHED
        return self.admit(job)

    def admit(self, job: SummaryJob) -> AdmissionOutcome:
        """Dedup and enqueue a job already known to be uncached."""
        fingerprint = job.fingerprint
        if not self.in_flight.try_add(fingerprint):
            return AdmissionOutcome.ALREADY_IN_FLIGHT

        if not self.pool.try_enqueue(job):
            # Nothing was queued, so the fingerprint must not stay marked
            self.in_flight.discard(fingerprint)
            logger.warning(f"[INTAKE] Queue full, rejected {fingerprint}")
            return AdmissionOutcome.QUEUE_FULL

        return AdmissionOutcome.ADMITTED

    async def enqueue_batch(self, account_id: str, email_ids: Iterable[str]) -> BatchResult:
        """
        Return the summaries already cached and queue the rest.

        Message content is looked up only for ids that are neither cached
        nor in flight. Ids whose message does not exist are skipped.

        Raises:
            Exception: whatever the store raises while reading the cache,
                or the message lookup raises. Ids admitted before the
                failure stay queued.
        """
        ids = list(dict.fromkeys(email_ids))
        if not ids:
            return BatchResult()

        cached = await asyncio.to_thread(self.store.get_cached, account_id, ids)

        queued = 0
        outcomes = {outcome: 0 for outcome in AdmissionOutcome}
        for email_id in ids:
            if email_id in cached:
                outcomes[AdmissionOutcome.ALREADY_CACHED] += 1
                continue

            outcome = await self._admit_uncached(Fingerprint(account_id=account_id, message_id=email_id))
            outcomes[outcome] += 1
            if outcome is AdmissionOutcome.ADMITTED:
                queued += 1

        logger.info(
            f"[INTAKE] Batch for {account_id}: "
            + ", ".join(f"{outcome.value}={count}" for outcome, count in outcomes.items() if count)
        )
        return BatchResult(cached=cached, queued_count=queued)

    async def _admit_uncached(self, fingerprint: Fingerprint) -> AdmissionOutcome:
        if fingerprint in self.in_flight:
            return AdmissionOutcome.ALREADY_IN_FLIGHT

        message = await asyncio.to_thread(self.messages.get_message, fingerprint.account_id, fingerprint.message_id)
        if message is None:
            logger.info(f"[INTAKE] Message {fingerprint} not found, skipping")
            return AdmissionOutcome.NOT_FOUND

        return self.admit(SummaryJob.from_message(fingerprint, message))

    async def get_cached(self, account_id: str, email_ids: Iterable[str]):
        return await asyncio.to_thread(self.store.get_cached, account_id, list(dict.fromkeys(email_ids)))
