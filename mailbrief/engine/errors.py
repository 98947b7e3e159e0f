"""
Provider failure taxonomy.

Routing decisions are driven by the text of an error, never by its type:
upstream SDKs and HTTP clients report the same condition through many
exception classes, but their messages are consistent enough to match.
"""

from enum import Enum
from typing import List, Optional, Sequence

from mailbrief.data.models import OperationKind

CONNECTION_INDICATORS = (
    "connection refused",
    "no such host",
    "network unreachable",
    "network is unreachable",
    "connection reset",
    "timeout",
    "timed out",
    "dial failure",
    "dial tcp",
    "cannot connect to host",
    "unexpected end of input",
    "eof",
)

QUOTA_INDICATORS = (
    "429",
    "quota",
    "rate limit",
    "too many requests",
    "resource exhausted",
    "resource_exhausted",
)


class FailureClass(str, Enum):
    CONNECTION = "connection"
    QUOTA = "quota"
    OTHER = "other"


def classify_failure(error: object) -> FailureClass:
    """Case-insensitive substring match of str(error) against the indicator lists."""
    text = str(error).lower()
    if any(indicator in text for indicator in QUOTA_INDICATORS):
        return FailureClass.QUOTA
    if any(indicator in text for indicator in CONNECTION_INDICATORS):
        return FailureClass.CONNECTION
    return FailureClass.OTHER


class ProviderError(Exception):
    """Base class for everything the provider layer raises."""


class ProviderFailure(ProviderError):
    failure_class = FailureClass.OTHER

    def __init__(self, provider: str, operation: OperationKind, message: str):
        self.provider = provider
        self.operation = operation
        self.message = message
        super().__init__(f"{provider} {operation.value} failed ({self.failure_class.value}): {message}")


class ProviderConnectionFailure(ProviderFailure):
    failure_class = FailureClass.CONNECTION


class ProviderQuotaFailure(ProviderFailure):
    failure_class = FailureClass.QUOTA


class ProviderOtherFailure(ProviderFailure):
    failure_class = FailureClass.OTHER


_FAILURE_TYPES = {
    FailureClass.CONNECTION: ProviderConnectionFailure,
    FailureClass.QUOTA: ProviderQuotaFailure,
    FailureClass.OTHER: ProviderOtherFailure,
}


def failure_from_exception(provider: str, operation: OperationKind, error: BaseException) -> ProviderFailure:
    """Wrap any provider-side exception in the ProviderFailure subclass its message implies."""
    if isinstance(error, ProviderFailure):
        return error
    message = str(error) or type(error).__name__
    failure_type = _FAILURE_TYPES[classify_failure(message)]
    return failure_type(provider, operation, message)


class NoProviderAvailable(ProviderError):
    """Every configured provider was tried and none produced a result."""

    def __init__(self, operation: OperationKind, failures: Optional[Sequence[ProviderFailure]] = None):
        self.operation = operation
        self.failures: List[ProviderFailure] = list(failures or [])
        if self.failures:
            detail = "; ".join(str(f) for f in self.failures)
        else:
            detail = "no provider configured"
        super().__init__(f"no AI provider available for {operation.value}: {detail}")


class ProviderConfigError(ProviderError):
    """A provider is missing the configuration it needs to make a call."""
