"""
Provider Router

Routes each AI operation to an ordered (primary, secondary) provider pair:
- Summarization: local provider first (fast, free), hosted as fallback
- Task extraction / related terms: hosted first (quality), local as fallback

When the secondary fails for the *other* recognized reason (connection vs
quota), the primary gets exactly one more call before the router gives up.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from mailbrief.data.models import OperationKind, TaskExtraction
from mailbrief.engine.errors import (
    FailureClass,
    NoProviderAvailable,
    ProviderFailure,
    failure_from_exception,
)
from mailbrief.engine.providers import AIProvider

logger = logging.getLogger(__name__)

DEFAULT_CALL_TIMEOUT = 30.0

_METHODS = {
    OperationKind.SUMMARIZE: "summarize",
    OperationKind.EXTRACT_TASKS: "extract_tasks",
    OperationKind.SUGGEST_TERMS: "suggest_related_terms",
}

# Only a connection/quota mismatch suggests the primary may have recovered.
_RETRY_PAIRS = {
    (FailureClass.CONNECTION, FailureClass.QUOTA),
    (FailureClass.QUOTA, FailureClass.CONNECTION),
}


class ProviderRouter:
    def __init__(
        self,
        local: Optional[AIProvider] = None,
        hosted: Optional[AIProvider] = None,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
    ):
        self.local = local
        self.hosted = hosted
        self.call_timeout = call_timeout
        self._order: Dict[OperationKind, Tuple[Optional[AIProvider], Optional[AIProvider]]] = {
            OperationKind.SUMMARIZE: self._pair(local, hosted),
            OperationKind.EXTRACT_TASKS: self._pair(hosted, local),
            OperationKind.SUGGEST_TERMS: self._pair(hosted, local),
        }

    @staticmethod
    def _pair(first: Optional[AIProvider], second: Optional[AIProvider]):
        # A lone provider is always the primary
        if first is None:
            return second, None
        return first, second

    def order_for(self, kind: OperationKind) -> Tuple[Optional[AIProvider], Optional[AIProvider]]:
        return self._order[kind]

    @property
    def configured(self) -> bool:
        return self.local is not None or self.hosted is not None

    async def close(self) -> None:
        for provider in (self.local, self.hosted):
            if provider is not None:
                await provider.close()

    async def _invoke(self, provider: AIProvider, kind: OperationKind, argument: str) -> Any:
        method = getattr(provider, _METHODS[kind])
        try:
            return await asyncio.wait_for(method(argument), timeout=self.call_timeout)
        except asyncio.TimeoutError:
            raise failure_from_exception(
                provider.name, kind, TimeoutError(f"provider call timeout after {self.call_timeout}s")
            )
        except Exception as e:
            raise failure_from_exception(provider.name, kind, e) from e

    async def call(self, kind: OperationKind, argument: str) -> Any:
        """
        Run one operation with failover.

        Raises:
            ProviderFailure: the primary's error (no secondary), or the
                primary's error on the extra attempt after a class mismatch
            NoProviderAvailable: nothing configured, or both providers failed
        """
        primary, secondary = self._order[kind]
        if primary is None:
            raise NoProviderAvailable(kind)

        logger.info(f"[AI-ROUTER] Trying {primary.name} for {kind.value}")
        try:
            result = await self._invoke(primary, kind, argument)
            logger.info(f"[AI-ROUTER] {primary.name} {kind.value} successful")
            return result
        except ProviderFailure as primary_error:
            first_failure = primary_error

        if secondary is None:
            logger.error(
                f"[AI-ROUTER] {primary.name} {kind.value} failed "
                f"(class={first_failure.failure_class.value}), no fallback configured"
            )
            raise first_failure

        logger.warning(
            f"[AI-ROUTER] {primary.name} {kind.value} failed "
            f"(class={first_failure.failure_class.value}): {first_failure.message}. "
            f"Falling back to {secondary.name}"
        )
        try:
            result = await self._invoke(secondary, kind, argument)
            logger.info(f"[AI-ROUTER] {secondary.name} {kind.value} successful")
            return result
        except ProviderFailure as secondary_error:
            second_failure = secondary_error

        classes = (first_failure.failure_class, second_failure.failure_class)
        if classes in _RETRY_PAIRS:
            logger.warning(
                f"[AI-ROUTER] {secondary.name} failed (class={second_failure.failure_class.value}), "
                f"retrying {primary.name} once"
            )
            return await self._invoke(primary, kind, argument)

        logger.error(
            f"[AI-ROUTER] {kind.value} exhausted providers "
            f"({primary.name}={classes[0].value}, {secondary.name}={classes[1].value})"
        )
        raise NoProviderAvailable(kind, [first_failure, second_failure])

    async def summarize(self, text: str) -> str:
        return await self.call(OperationKind.SUMMARIZE, text)

    async def extract_tasks(self, text: str) -> List[TaskExtraction]:
        return await self.call(OperationKind.EXTRACT_TASKS, text)

    async def suggest_related_terms(self, term: str) -> List[str]:
        return await self.call(OperationKind.SUGGEST_TERMS, term)
