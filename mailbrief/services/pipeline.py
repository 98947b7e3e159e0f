"""
Wiring for the background summarization pipeline.

SummaryPipeline owns one in-flight set, one worker pool and one intake,
all sharing the same store and router. The process startup sequence
builds it once, starts it, and shuts it down on exit.
"""

import logging
from typing import Optional

import socketio

from mailbrief.config import Config, RuntimeProviderSettings
from mailbrief.data.models import BatchResult
from mailbrief.engine.provider_router import ProviderRouter
from mailbrief.engine.providers import build_providers
from mailbrief.infrastructure.contracts import MessageLookup, Notifier, SummaryStore
from mailbrief.infrastructure.in_flight import InFlightSet
from mailbrief.infrastructure.memory_store import MemoryStore
from mailbrief.infrastructure.summary_intake import SummaryIntake
from mailbrief.infrastructure.summary_worker import SummaryWorkerPool
from mailbrief.services.notifier import SocketIONotifier

logger = logging.getLogger(__name__)


class SummaryPipeline:

    def __init__(
        self,
        store: SummaryStore,
        messages: MessageLookup,
        router: ProviderRouter,
        notifier: Notifier,
        runtime_settings: Optional[RuntimeProviderSettings] = None,
        worker_count: int = 3,
        queue_capacity: int = 500,
        input_max_chars: int = 5000,
        summary_max_chars: int = 200,
    ):
        self.store = store
        self.messages = messages
        self.router = router
        self.notifier = notifier
        self.runtime_settings = runtime_settings or RuntimeProviderSettings.from_config()
        self.in_flight = InFlightSet()
        self.pool = SummaryWorkerPool(
            router=router,
            store=store,
            notifier=notifier,
            in_flight=self.in_flight,
            worker_count=worker_count,
            queue_capacity=queue_capacity,
            input_max_chars=input_max_chars,
            summary_max_chars=summary_max_chars,
        )
        self.intake = SummaryIntake(store, messages, self.in_flight, self.pool)

    @classmethod
    def from_config(cls, sio: socketio.AsyncServer) -> "SummaryPipeline":
        runtime_settings = RuntimeProviderSettings.from_config()
        local, hosted = build_providers(runtime_settings)
        router = ProviderRouter(local=local, hosted=hosted, call_timeout=Config.PROVIDER_CALL_TIMEOUT)

        if Config.supabase_configured():
            from mailbrief.infrastructure.supabase_store import SupabaseStore
            store = SupabaseStore(Config.SUPABASE_URL, Config.SUPABASE_SERVICE_KEY)
        else:
            logger.warning("[PIPELINE] Supabase not configured, using in-memory store")
            store = MemoryStore()

        return cls(
            store=store,
            messages=store,
            router=router,
            notifier=SocketIONotifier(sio),
            runtime_settings=runtime_settings,
            worker_count=Config.SUMMARY_WORKERS,
            queue_capacity=Config.SUMMARY_QUEUE_CAPACITY,
            input_max_chars=Config.SUMMARY_INPUT_MAX_CHARS,
            summary_max_chars=Config.SUMMARY_MAX_CHARS,
        )

    def start(self) -> None:
        setup = getattr(self.notifier, "setup", None)
        if setup is not None:
            setup()
        self.pool.start()

    async def shutdown(self, grace_seconds: float) -> None:
        await self.pool.shutdown(grace_seconds)
        await self.router.close()
        flush = getattr(self.notifier, "flush", None)
        if flush is not None:
            await flush()

    async def enqueue_batch(self, account_id: str, email_ids) -> BatchResult:
        return await self.intake.enqueue_batch(account_id, email_ids)
