# talentmatch/services/common/llm_client.py
"""Unified LLM client supporting both OpenAI and Ollama: structured JSON completions,
prompt loading, model-tier resolution and provider error classification."""
from __future__ import annotations
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from openai import (
    OpenAI,
    APIConnectionError,
    APIStatusError,
    AuthenticationError,
    BadRequestError,
    PermissionDeniedError,
    RateLimitError,
)

from talentmatch.core.config import settings
from talentmatch.core.errors import ParseError, ProviderError, ProviderFatalError, ProviderTransientError

logger = logging.getLogger("ai.llm")


# Default Ollama chat options
DEFAULT_CHAT_OPTIONS: Dict[str, Any] = {
    "temperature": 0,
    "seed": 7,
    "repeat_penalty": 1.05,
    "num_ctx": 8192,
    "num_predict": 2048,
}

PROMPTS_DIR = Path(__file__).resolve().parents[2] / "prompts"  # talentmatch/prompts

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_DECODER = json.JSONDecoder()


def _as_object(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, dict):
        return value
    if isinstance(value, list) and len(value) == 1 and isinstance(value[0], dict):
        return value[0]
    return None


def _openai_api_key() -> str:
    key = settings.OPENAI_API_KEY
    if not key:
        raise ProviderFatalError("OPENAI_API_KEY is missing; set it in the environment or .env")
    return key


_openai_client: Optional[OpenAI] = None


def get_openai_client() -> OpenAI:
    """Process-wide OpenAI client, shared with the embedding client."""
    global _openai_client
    if _openai_client is None:
        _openai_client = OpenAI(api_key=_openai_api_key())
        logger.info("OpenAI client ready")
    return _openai_client


def classify_provider_error(exc: BaseException) -> ProviderError:
    """
    Map an SDK/HTTP exception to the retry taxonomy.
    Transient: connection failures, timeouts, throttling and 5xx.
    Fatal: auth, permission, exhausted quota, bad requests and any other 4xx.
    """
    if isinstance(exc, ProviderError):
        return exc

    msg = str(exc) or exc.__class__.__name__

    # openai SDK (APITimeoutError is a subclass of APIConnectionError)
    if isinstance(exc, APIConnectionError):
        return ProviderTransientError(f"Provider connection failed: {msg}", cause=exc)
    if isinstance(exc, RateLimitError):
        code = getattr(exc, "code", None) or ""
        if code == "insufficient_quota" or "insufficient_quota" in msg:
            return ProviderFatalError(f"Provider quota exhausted: {msg}", cause=exc)
        return ProviderTransientError(f"Provider rate limited: {msg}", cause=exc)
    if isinstance(exc, (AuthenticationError, PermissionDeniedError)):
        return ProviderFatalError(f"Provider rejected credentials: {msg}", cause=exc)
    if isinstance(exc, BadRequestError):
        return ProviderFatalError(f"Provider rejected request: {msg}", cause=exc)
    if isinstance(exc, APIStatusError):
        if exc.status_code >= 500:
            return ProviderTransientError(f"Provider error {exc.status_code}: {msg}", cause=exc)
        return ProviderFatalError(f"Provider error {exc.status_code}: {msg}", cause=exc)

    # requests (Ollama)
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return ProviderTransientError(f"Provider connection failed: {msg}", cause=exc)
    if isinstance(exc, requests.HTTPError):
        status = exc.response.status_code if exc.response is not None else 0
        if status == 429 or status >= 500:
            return ProviderTransientError(f"Provider error {status}: {msg}", cause=exc)
        return ProviderFatalError(f"Provider error {status}: {msg}", cause=exc)
    if isinstance(exc, requests.RequestException):
        return ProviderTransientError(f"Provider request failed: {msg}", cause=exc)

    return ProviderFatalError(f"Unexpected provider failure: {msg}", cause=exc)


def resolve_model(tier_or_name: Optional[str] = None) -> str:
    """'fast' / 'capable' map to configured model names; anything else is used verbatim."""
    choice = (tier_or_name or settings.EXTRACTION_MODEL_TIER or "").strip()
    tiers = {
        "fast": settings.EXTRACTION_MODEL_FAST,
        "capable": settings.EXTRACTION_MODEL_CAPABLE,
    }
    if choice.lower() in tiers:
        return tiers[choice.lower()]
    return choice or settings.EXTRACTION_MODEL_CAPABLE


def load_prompt(relative_path: str) -> str:
    """Read talentmatch/prompts/<relative_path>."""
    path = PROMPTS_DIR / relative_path
    if not path.is_file():
        raise FileNotFoundError(f"Prompt file not found: {path}")
    text = path.read_text(encoding="utf-8")
    logger.debug("Loaded prompt %s (%d chars)", relative_path, len(text))
    return text


class LLMClient:
    """
    Wrapper over OpenAI and Ollama chat endpoints.
      - complete_structured: one JSON object per call, used by the profile extractor.

    Provider comes from the explicit argument, else LLM_PROVIDER.
    Model comes from the explicit argument (tier or literal name), else EXTRACTION_MODEL_TIER.
    """

    def __init__(self, model: Optional[str] = None, provider: Optional[str] = None):
        self.provider = (provider or settings.LLM_PROVIDER or "openai").lower()
        if self.provider not in ("openai", "ollama"):
            raise ValueError(f"Unknown provider: {self.provider}")
        self.model = resolve_model(model)
        self.temperature = settings.EXTRACTION_TEMPERATURE
        logger.info("LLM client initialized with %s: %s", self.provider, self.model)

    def complete_structured(
        self,
        system_prompt: str,
        user_text: str,
        schema_hint: Optional[Dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Run a chat completion that MUST return one JSON object.
        Raises ParseError on undecodable output and ProviderTransientError /
        ProviderFatalError on provider failures.
        """
        system = system_prompt
        if schema_hint:
            system = f"{system_prompt}\n\nReturn JSON matching this shape:\n{json.dumps(schema_hint, indent=2)}"
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": user_text},
        ]
        timeout = timeout if timeout is not None else settings.PROVIDER_TIMEOUT_SEC

        try:
            if self.provider == "ollama":
                raw = self._chat_ollama(messages, timeout)
            else:
                raw = self._chat_openai(messages, timeout)
        except Exception as e:
            err = classify_provider_error(e)
            logger.warning("LLM call failed (%s): %s", err.__class__.__name__, err.message)
            raise err from e

        try:
            data = self._coerce_json(raw)
        except json.JSONDecodeError as je:
            logger.error("JSON decode failed for model output (%d chars)", len(raw or ""))
            raise ParseError(
                f"Model output is not a JSON object: {je}",
                details={"raw_preview": (raw or "")[:1200]},
                cause=je,
            ) from je
        logger.debug("complete_structured parsed keys: %s", list(data.keys()))
        return data

    # ===== Ollama =====
    def _chat_ollama(self, messages: List[Dict[str, str]], timeout: float) -> str:
        if not settings.OLLAMA_BASE_URL:
            raise ProviderFatalError("OLLAMA_BASE_URL is not set. Please add it to your environment or .env file.")
        options = DEFAULT_CHAT_OPTIONS.copy()
        options["temperature"] = self.temperature
        payload = {
            "model": self.model,
            "messages": messages,
            "format": "json",
            "stream": False,
            "options": options,
            "keep_alive": "30m",
        }
        url = f"{settings.OLLAMA_BASE_URL.rstrip('/')}/api/chat"
        response = requests.post(url, json=payload, timeout=timeout)
        response.raise_for_status()
        content = response.json().get("message", {}).get("content", "").strip()
        logger.debug("Ollama chat received %d chars", len(content))
        return content

    # ===== OpenAI =====
    def _chat_openai(self, messages: List[Dict[str, str]], timeout: float) -> str:
        client = get_openai_client()
        resp = client.chat.completions.create(
            model=self.model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=self.temperature,
            timeout=timeout,
        )
        content = (resp.choices[0].message.content or "").strip()
        logger.debug("OpenAI chat received %d chars", len(content))
        return content

    @staticmethod
    def _coerce_json(text: str) -> Dict[str, Any]:
        """Pull one JSON object out of raw model output.

        Accepts a bare object, an object inside a ```json fence, an object with
        prose around it, or a one-element list holding an object.
        """
        body = _FENCE_RE.sub("", (text or "").strip()).strip()
        if not body:
            raise json.JSONDecodeError("Empty model output", text or "", 0)

        try:
            obj = _as_object(json.loads(body))
        except json.JSONDecodeError:
            obj = None
        if obj is not None:
            return obj

        # prose around the object: try each opening brace in turn
        pos = body.find("{")
        while pos != -1:
            try:
                value, _ = _DECODER.raw_decode(body, pos)
            except json.JSONDecodeError:
                pos = body.find("{", pos + 1)
                continue
            if isinstance(value, dict):
                return value
            pos = body.find("{", pos + 1)

        raise json.JSONDecodeError("Expected JSON object", body, 0)


_clients: Dict[tuple, LLMClient] = {}


def get_llm_client(model: Optional[str] = None, provider: Optional[str] = None) -> LLMClient:
    """Cached client per (provider, resolved model)."""
    key = ((provider or settings.LLM_PROVIDER).lower(), resolve_model(model))
    client = _clients.get(key)
    if client is None:
        client = LLMClient(model=model, provider=provider)
        _clients[key] = client
    return client
