"""
AI Email Summarization Worker Pool

Bounded asyncio queue drained by a fixed number of worker tasks.

Workflow per job:
1. Re-check the summary cache (another admission cycle may have filled it)
2. Summarize through the provider router (per-call deadline, failover)
3. Write the summary through the store (idempotent upsert)
4. Release the fingerprint from the in-flight set
5. Push a summary_update event to the account's sessions (best-effort)

A job whose providers are exhausted, or whose write fails, is dropped:
logged, fingerprint released, nothing persisted, nobody notified. A later
client request re-admits it from scratch.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from mailbrief.data.models import SummaryJob
from mailbrief.engine.errors import ProviderError
from mailbrief.engine.provider_router import ProviderRouter
from mailbrief.infrastructure.contracts import Notifier, SummaryStore
from mailbrief.infrastructure.in_flight import InFlightSet

logger = logging.getLogger(__name__)

# Constants
SUMMARY_EVENT = "summary_update"
DEFAULT_WORKERS = 3
DEFAULT_QUEUE_CAPACITY = 500
DEFAULT_INPUT_MAX_CHARS = 5000
DEFAULT_SUMMARY_MAX_CHARS = 200


def clip_summary(summary: str, max_chars: int) -> str:
    summary = summary.strip()
    if len(summary) > max_chars:
        return summary[:max_chars] + "..."
    return summary


class SummaryWorkerPool:

    def __init__(
        self,
        router: ProviderRouter,
        store: SummaryStore,
        notifier: Notifier,
        in_flight: InFlightSet,
        worker_count: int = DEFAULT_WORKERS,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
        input_max_chars: int = DEFAULT_INPUT_MAX_CHARS,
        summary_max_chars: int = DEFAULT_SUMMARY_MAX_CHARS,
    ):
        self.router = router
        self.store = store
        self.notifier = notifier
        self.in_flight = in_flight
        if worker_count <= 0:
            logger.warning(f"[SUMMARY-WORKER] Invalid worker count {worker_count}, using {DEFAULT_WORKERS}")
            worker_count = DEFAULT_WORKERS
        if queue_capacity <= 0:
            # asyncio.Queue treats maxsize <= 0 as unbounded
            logger.warning(f"[SUMMARY-WORKER] Invalid queue capacity {queue_capacity}, using {DEFAULT_QUEUE_CAPACITY}")
            queue_capacity = DEFAULT_QUEUE_CAPACITY
        self.worker_count = worker_count
        self.input_max_chars = input_max_chars
        self.summary_max_chars = summary_max_chars

        self._queue: "asyncio.Queue[SummaryJob]" = asyncio.Queue(maxsize=queue_capacity)
        self._tasks: List[asyncio.Task] = []
        self._accepting = True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        """Spawn the worker tasks. Must run inside the event loop; second call is a no-op."""
        if self._tasks or not self._accepting:
            return

        for worker_id in range(self.worker_count):
            task = asyncio.create_task(self._worker(worker_id), name=f"summary-worker-{worker_id}")
            self._tasks.append(task)
        logger.info(f"[SUMMARY-WORKER] Started {self.worker_count} workers (queue capacity={self._queue.maxsize})")

    async def shutdown(self, grace_seconds: float) -> None:
        """
        Stop accepting jobs, give queued and running jobs up to grace_seconds
        to finish, then cancel the workers. Abandoned fingerprints stay in
        the in-flight set.
        """
        self._accepting = False
        if not self._tasks:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=grace_seconds)
            logger.info("[SUMMARY-WORKER] Queue drained before shutdown")
        except asyncio.TimeoutError:
            logger.warning(
                f"[SUMMARY-WORKER] Grace period of {grace_seconds}s expired, "
                f"abandoning {self._queue.qsize()} queued job(s) and any in progress"
            )

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("[SUMMARY-WORKER] All workers stopped")

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------
    def try_enqueue(self, job: SummaryJob) -> bool:
        """Non-blocking admission. False when the queue is full or the pool is shutting down."""
        if not self._accepting:
            return False
        try:
            self._queue.put_nowait(job)
            return True
        except asyncio.QueueFull:
            return False

    async def drain(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    def stats(self) -> Dict[str, Any]:
        return {
            "capacity": self._queue.maxsize,
            "queued": self._queue.qsize(),
            "in_flight": len(self.in_flight),
            "workers": self.worker_count,
            "running": self.running,
        }

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------
    async def _worker(self, worker_id: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.process_job(job)
            except Exception as e:
                logger.error(
                    f"[SUMMARY-WORKER] Worker {worker_id} job {job.fingerprint} crashed (type={type(e).__name__})",
                    exc_info=True,
                )
            finally:
                self._queue.task_done()

    async def process_job(self, job: SummaryJob) -> bool:
        """Process one job. Returns True when a summary was persisted (or already cached) and announced."""
        fingerprint = job.fingerprint
        logger.info(f"[SUMMARY-WORKER] Processing {fingerprint}")

        try:
            summary = await self._produce_summary(job)
        except asyncio.CancelledError:
            logger.warning(f"[SUMMARY-WORKER] Abandoned {fingerprint} during shutdown")
            raise
        except Exception:
            self.in_flight.discard(fingerprint)
            raise

        self.in_flight.discard(fingerprint)
        if summary is None:
            return False

        await self._send_summary_update(job, summary)
        return True

    async def _produce_summary(self, job: SummaryJob) -> Optional[str]:
        fingerprint = job.fingerprint

        # 1. Cache re-check
        try:
            existing = await asyncio.to_thread(self.store.get_summary, job.account_id, job.message_id)
        except Exception as e:
            logger.warning(f"[SUMMARY-WORKER] Cache check failed for {fingerprint} (type={type(e).__name__})")
            existing = None
        if existing is not None:
            logger.info(f"[SUMMARY-WORKER] Cache hit for {fingerprint}, skipping providers")
            return existing.summary

        # 2. Providers
        try:
            summary = await self.router.summarize(job.prompt_text(self.input_max_chars))
        except ProviderError as e:
            logger.error(f"[SUMMARY-WORKER] Dropping {fingerprint}: {e}")
            return None
        summary = clip_summary(summary, self.summary_max_chars)

        # 3. Persist
        try:
            await asyncio.to_thread(self.store.put, job.account_id, job.message_id, summary)
        except Exception as e:
            logger.error(f"[SUMMARY-WORKER] Dropping {fingerprint}: summary write failed (type={type(e).__name__})")
            return None

        logger.info(f"[SUMMARY-WORKER] Generated summary for {fingerprint}")
        return summary

    async def _send_summary_update(self, job: SummaryJob, summary: str) -> None:
        try:
            await self.notifier.notify(job.account_id, SUMMARY_EVENT, {
                "email_id": job.message_id,
                "summary": summary,
            })
        except Exception as e:
            # Non-critical: the client can always re-read the cache
            logger.warning(f"[SUMMARY-WORKER] Notify failed for {job.fingerprint}: {type(e).__name__}")
