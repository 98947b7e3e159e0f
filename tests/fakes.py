"""Test doubles for the summary pipeline."""

import asyncio
from typing import Any, Dict, List, Tuple


from mailbrief.data.models import SummaryJob
from mailbrief.engine.providers import AIProvider
from mailbrief.infrastructure.contracts import Notifier
from mailbrief.infrastructure.in_flight import InFlightSet
from mailbrief.infrastructure.memory_store import MemoryStore


class ScriptedProvider(AIProvider):
    """
    Provider whose answers are scripted per operation.

    A script entry is a value, an exception instance, or a list of those
    consumed in order (the last entry repeats).
    """

    def __init__(self, name: str, summarize=None, extract_tasks=None, suggest_terms=None, delay: float = 0.0):
        self.name = name
        self.delay = delay
        self.calls: List[Tuple[str, str]] = []
        self._script = {
            "summarize": summarize,
            "extract_tasks": extract_tasks,
            "suggest_terms": suggest_terms,
        }

    async def generate(self, prompt, temperature, max_tokens):
        raise NotImplementedError

    def calls_for(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    async def _run(self, operation: str, argument: str):
        self.calls.append((operation, argument))
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self._script[operation]
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def summarize(self, text):
        return await self._run("summarize", text)

    async def extract_tasks(self, text):
        return await self._run("extract_tasks", text)

    async def suggest_related_terms(self, term):
        return await self._run("suggest_terms", term)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.events: List[Tuple[str, str, Dict[str, Any]]] = []

    async def notify(self, account_id, event, data):
        self.events.append((account_id, event, data))


def make_job(message_id: str, account_id: str = "acc-1", subject: str = "Hello", body: str = "Body") -> SummaryJob:
    return SummaryJob(account_id=account_id, message_id=message_id, subject=subject, body=body)
