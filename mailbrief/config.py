"""
Configuration Management with Environment Validation

Centralized configuration for the summarization service. Values are read
from the environment (and a local .env file) once, at import time.
Runtime-adjustable provider settings live in RuntimeProviderSettings.
"""

import logging
import os
import threading
from typing import Dict, Tuple

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _float_env(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Config:
    """
    Application configuration with environment validation.
    Fails fast if critical variables are missing.
    """

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "text")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # AI providers
    AI_PROVIDER: str = os.getenv("AI_PROVIDER", "auto").lower()
    MISTRAL_API_KEY: str = os.getenv("MISTRAL_API_KEY", "")
    MISTRAL_MODEL: str = os.getenv("MISTRAL_MODEL", "mistral-small-latest")
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3")

    # Summary pipeline
    SUMMARY_WORKERS: int = _int_env("SUMMARY_WORKERS", 3)
    SUMMARY_QUEUE_CAPACITY: int = _int_env("SUMMARY_QUEUE_CAPACITY", 500)
    PROVIDER_CALL_TIMEOUT: float = _float_env("PROVIDER_CALL_TIMEOUT", 30.0)
    SHUTDOWN_GRACE_SECONDS: float = _float_env("SHUTDOWN_GRACE_SECONDS", 10.0)
    SUMMARY_INPUT_MAX_CHARS: int = _int_env("SUMMARY_INPUT_MAX_CHARS", 5000)
    SUMMARY_MAX_CHARS: int = _int_env("SUMMARY_MAX_CHARS", 200)

    # Supabase (summary cache + message lookup)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_KEY: str = os.getenv("SUPABASE_SERVICE_KEY", "")

    # Redis (for WebSocket scaling across processes)
    REDIS_URL: str = os.getenv("REDIS_URL", "")

    VALID_PROVIDERS = ("auto", "ollama", "mistral")

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical environment variables at startup.
        Raises RuntimeError if any required variables are missing.
        """
        missing = []
        warnings = []

        if cls.AI_PROVIDER not in cls.VALID_PROVIDERS:
            missing.append(f"AI_PROVIDER (got '{cls.AI_PROVIDER}', expected one of {', '.join(cls.VALID_PROVIDERS)})")

        if cls.AI_PROVIDER == "mistral" and not cls.MISTRAL_API_KEY:
            missing.append("MISTRAL_API_KEY (required when AI_PROVIDER=mistral)")

        # In production the summary cache must be durable
        if cls.is_production():
            if not cls.SUPABASE_URL:
                missing.append("SUPABASE_URL")
            if not cls.SUPABASE_SERVICE_KEY:
                missing.append("SUPABASE_SERVICE_KEY")
        elif not cls.supabase_configured():
            warnings.append("SUPABASE_URL / SUPABASE_SERVICE_KEY (in-memory store active, summaries are lost on restart)")

        if cls.AI_PROVIDER == "auto" and not cls.MISTRAL_API_KEY:
            warnings.append("MISTRAL_API_KEY (hosted fallback disabled, Ollama only)")

        if not cls.REDIS_URL:
            warnings.append("REDIS_URL (push events reach sessions on this process only)")

        if cls.SUMMARY_WORKERS <= 0:
            missing.append("SUMMARY_WORKERS (must be positive)")
        if cls.SUMMARY_QUEUE_CAPACITY <= 0:
            missing.append("SUMMARY_QUEUE_CAPACITY (must be positive)")

        if missing:
            raise RuntimeError(
                f"\n{'='*70}\n"
                f"CRITICAL ERROR: Missing or invalid environment variables:\n"
                f"{chr(10).join('  - ' + var for var in missing)}\n\n"
                f"Add these to your .env file or configure a secrets manager.\n"
                f"{'='*70}"
            )

        for var in warnings:
            logger.warning(f"[CONFIG] Optional variable not set: {var}")

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def supabase_configured(cls) -> bool:
        return bool(cls.SUPABASE_URL and cls.SUPABASE_SERVICE_KEY)


class RuntimeProviderSettings:
    """
    Mutable local-provider settings shared between the settings endpoint
    and the Ollama provider. Readers take a snapshot per call.
    """

    def __init__(self, base_url: str, model: str):
        self._lock = threading.Lock()
        self._base_url = base_url.rstrip("/")
        self._model = model

    @classmethod
    def from_config(cls) -> "RuntimeProviderSettings":
        return cls(Config.OLLAMA_BASE_URL, Config.OLLAMA_MODEL)

    def snapshot(self) -> Tuple[str, str]:
        """Return (base_url, model)."""
        with self._lock:
            return self._base_url, self._model

    def update(self, base_url: str, model: str = "") -> None:
        with self._lock:
            self._base_url = base_url.rstrip("/")
            if model:
                self._model = model
        logger.info(f"[CONFIG] Ollama settings updated (base_url={base_url}, model={model or 'unchanged'})")

    def as_dict(self) -> Dict[str, str]:
        base_url, model = self.snapshot()
        return {"ollama_base_url": base_url, "ollama_model": model}
