"""
AI provider adapters.

Every provider implements the same three operations. The operations and
their decoding live on the base class; a concrete provider only knows how
to turn a prompt into raw text on its own backend.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Callable, List, Optional, Tuple

import aiohttp
from mistralai import Mistral

from mailbrief.config import Config, RuntimeProviderSettings
from mailbrief.data.models import TaskExtraction
from mailbrief.engine.decoding import parse_tasks, parse_terms
from mailbrief.engine.errors import ProviderConfigError
from mailbrief.engine.prompts import (
    RELATED_TERMS_PROMPT,
    SUMMARIZATION_PROMPT,
    SYSTEM_PROMPT,
    TASK_EXTRACTION_PROMPT,
)

logger = logging.getLogger(__name__)

# (temperature, max output tokens) per operation
SUMMARY_PARAMS = (0.3, 100)
TASK_PARAMS = (0.2, 500)
TERMS_PARAMS = (0.3, 100)

DEFAULT_REQUEST_TIMEOUT = 30.0


class AIProvider(ABC):
    """
    Abstract base class for text-generation backends.

    Subclasses implement generate(); summarize, extract_tasks and
    suggest_related_terms are shared so both backends decode identically.
    Any exception raised here is classified by the router.
    """

    name: str = "provider"

    @abstractmethod
    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """Send one prompt and return the raw completion text."""

    async def close(self) -> None:
        """Release network resources held by the provider."""

    async def summarize(self, text: str) -> str:
        temperature, max_tokens = SUMMARY_PARAMS
        result = await self.generate(SUMMARIZATION_PROMPT.format(email=text), temperature, max_tokens)
        result = (result or "").strip()
        if not result:
            raise ValueError(f"{self.name}: no summary returned")
        return result

    async def extract_tasks(self, text: str) -> List[TaskExtraction]:
        temperature, max_tokens = TASK_PARAMS
        prompt = TASK_EXTRACTION_PROMPT.format(today=date.today().isoformat(), email=text)
        result = await self.generate(prompt, temperature, max_tokens)
        return parse_tasks(result)

    async def suggest_related_terms(self, term: str) -> List[str]:
        temperature, max_tokens = TERMS_PARAMS
        result = await self.generate(RELATED_TERMS_PROMPT.format(term=term), temperature, max_tokens)
        return parse_terms(result, term)


class OllamaProvider(AIProvider):
    """
    Local Ollama server. Base URL and model are re-read on every call;
    the HTTP session is created on first use and reused until close().
    """

    name = "ollama"

    def __init__(self, settings: Callable[[], Tuple[str, str]], request_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self._settings = settings
        self.request_timeout = request_timeout
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            )
        return self._session

    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        base_url, model = self._settings()
        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }

        session = self._get_session()
        async with session.post(f"{base_url}/api/generate", json=payload) as response:
            body = await response.text()
            if response.status != 200:
                raise RuntimeError(f"ollama API error ({response.status}): {body[:500]}")

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise RuntimeError(f"ollama: failed to parse response: {e}") from e
        return data.get("response", "")

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.info("[AI-ROUTER] Closed ollama HTTP session")


class MistralProvider(AIProvider):
    """
    Hosted Mistral API through the official SDK. Calls use the SDK's async
    client, so a cancelled call aborts its HTTP request.
    """

    name = "mistral"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[Mistral] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.model = model or Config.MISTRAL_MODEL
        self.client = client
        if self.client is None and api_key:
            self.client = Mistral(api_key=api_key, timeout_ms=int(request_timeout * 1000))

    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        if not self.client:
            raise ProviderConfigError("Mistral API key not configured. Set MISTRAL_API_KEY environment variable.")

        response = await self.client.chat.complete_async(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )

        content = response.choices[0].message.content
        return content if isinstance(content, str) else ""


def build_providers(
    runtime_settings: RuntimeProviderSettings,
    provider_mode: Optional[str] = None,
    mistral_api_key: Optional[str] = None,
    request_timeout: Optional[float] = None,
) -> Tuple[Optional[AIProvider], Optional[AIProvider]]:
    """
    Build the (local, hosted) provider pair for the configured AI_PROVIDER mode.

    auto    -> Ollama plus Mistral when a key is available
    ollama  -> Ollama only
    mistral -> Mistral only (key required)
    """
    mode = (provider_mode or Config.AI_PROVIDER).lower()
    api_key = Config.MISTRAL_API_KEY if mistral_api_key is None else mistral_api_key
    timeout = Config.PROVIDER_CALL_TIMEOUT if request_timeout is None else request_timeout

    local: Optional[AIProvider] = None
    hosted: Optional[AIProvider] = None

    if mode in ("auto", "ollama"):
        local = OllamaProvider(runtime_settings.snapshot, request_timeout=timeout)
    if mode in ("auto", "mistral"):
        if api_key:
            hosted = MistralProvider(api_key=api_key, request_timeout=timeout)
        elif mode == "mistral":
            raise ProviderConfigError("MISTRAL_API_KEY is required for the mistral provider")
    if mode not in ("auto", "ollama", "mistral"):
        raise ProviderConfigError(f"Unknown AI_PROVIDER '{mode}'")

    logger.info(
        f"[AI-ROUTER] Providers configured (mode={mode}, "
        f"local={local.name if local else 'none'}, hosted={hosted.name if hosted else 'none'})"
    )
    return local, hosted
