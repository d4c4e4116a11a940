# talentmatch/services/common/embedding_client.py
"""Vector embeddings over OpenAI or a local Ollama server for candidates, jobs and search text."""
from __future__ import annotations
import logging
import random
import time
from typing import List, Optional, Sequence

import requests

from talentmatch.core.config import settings
from talentmatch.core.errors import ProviderTransientError
from talentmatch.services.common.llm_client import classify_provider_error, get_openai_client

logger = logging.getLogger("ai.embed")


class EmbeddingClient:
    """
    Embeds text with the configured provider and model.
    Every provider failure surfaces as ProviderTransientError or ProviderFatalError.
    """

    def __init__(self, model: Optional[str] = None, provider: Optional[str] = None):
        self.model = model or settings.EMBEDDING_MODEL
        self.provider = (provider or settings.LLM_PROVIDER or "openai").lower()
        logger.info("Initialized EmbeddingClient with %s model: %s", self.provider, self.model)

    def embed(self, text: str, *, timeout: Optional[float] = None) -> List[float]:
        """
        One vector for one text.
        No retry here: the caller owns the retry decision.
        """
        timeout = timeout if timeout is not None else settings.PROVIDER_TIMEOUT_SEC
        try:
            if self.provider == "ollama":
                return self._embed_ollama(text, timeout=timeout)
            return self._embed_openai(text, timeout=timeout)
        except Exception as e:
            err = classify_provider_error(e)
            logger.warning("Embedding call failed (%s): %s", err.__class__.__name__, err.message)
            raise err from e

    def embed_many(
        self,
        texts: Sequence[str],
        *,
        timeout: Optional[float] = None,
        batch_size: int = 64,
        max_retries: int = 3,
        base_backoff_sec: float = 1.0,
    ) -> List[List[float]]:
        """
        Generate embeddings for a list of texts, in input order.
        Transient failures of an OpenAI batch are retried with exponential backoff.
        """
        if not texts:
            return []
        timeout = timeout if timeout is not None else settings.PROVIDER_TIMEOUT_SEC

        if self.provider == "ollama":
            # Ollama /api/embeddings takes one prompt per call
            return [self.embed(t, timeout=timeout) for t in texts]

        vectors: List[List[float]] = []
        for start in range(0, len(texts), max(1, batch_size)):
            batch = list(texts[start : start + max(1, batch_size)])
            attempt = 0
            while True:
                try:
                    resp = get_openai_client().embeddings.create(model=self.model, input=batch, timeout=timeout)
                    vectors.extend(d.embedding for d in resp.data)
                    break
                except Exception as e:
                    err = classify_provider_error(e)
                    attempt += 1
                    if not isinstance(err, ProviderTransientError) or attempt > max_retries:
                        logger.error("embed_many failed: %s", err.message)
                        raise err from e
                    sleep_for = base_backoff_sec * (2 ** (attempt - 1)) + random.uniform(0, 0.25)
                    logger.warning("embed_many transient error: %s; retrying in %.2fs (attempt %d/%d)", err.message, sleep_for, attempt, max_retries)
                    time.sleep(sleep_for)
        return vectors

    def _embed_ollama(self, text: str, timeout: float) -> List[float]:
        base_url = (settings.OLLAMA_BASE_URL or "").rstrip("/")
        resp = requests.post(f"{base_url}/api/embeddings", json={"model": self.model, "prompt": text}, timeout=timeout)
        resp.raise_for_status()
        vec = resp.json().get("embedding")
        if not vec:
            raise ValueError(f"Ollama returned no embedding for model {self.model}")
        return vec

    def _embed_openai(self, text: str, timeout: float) -> List[float]:
        resp = get_openai_client().embeddings.create(model=self.model, input=text, timeout=timeout)
        vec = resp.data[0].embedding
        logger.debug("OpenAI embedding dim=%d", len(vec))
        return vec


_default: Optional[EmbeddingClient] = None


def get_embedding_client() -> EmbeddingClient:
    global _default
    if _default is None:
        _default = EmbeddingClient()
    return _default
