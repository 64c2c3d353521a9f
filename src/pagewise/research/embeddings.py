"""Embedding providers and the per-section embedding cache."""

import contextlib
import io
import logging
import os
from abc import ABC, abstractmethod
from numbers import Real
from typing import Any, Dict, Iterable, List, Optional

import requests

from pagewise.config import (
    EMBEDDING_API_KEY_ENV,
    EMBEDDING_API_URL,
    EMBEDDING_MODEL,
    EMBEDDING_PROVIDER,
    EMBEDDING_TIMEOUT,
    LOCAL_EMBEDDING_DEVICE,
    LOCAL_EMBEDDING_LOCAL_FILES_ONLY,
    LOCAL_EMBEDDING_MODEL,
    LOCAL_EMBEDDING_NORMALIZE,
    MIN_EMBEDDING_CHARS,
)
from pagewise.core.exceptions import ProviderError
from pagewise.core.types import Section
from pagewise.page.segmenter import embeddable_sections

logger = logging.getLogger(__name__)

try:
    from sentence_transformers import SentenceTransformer
except ImportError:
    SentenceTransformer = None  # type: ignore[assignment]


class EmbeddingProvider(ABC):
    """Turns one text into one vector for a fixed model."""

    model: str

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """Return the embedding of ``text`` or raise ``ProviderError``."""


def _coerce_vector(raw: Any) -> List[float]:
    rows = raw.tolist() if hasattr(raw, "tolist") else raw
    if not isinstance(rows, (list, tuple)) or not rows:
        raise ProviderError("Embedding response is not a non-empty vector")
    if not all(isinstance(value, Real) and not isinstance(value, bool) for value in rows):
        raise ProviderError("Embedding response contains non-numeric values")
    return [float(value) for value in rows]


class HTTPEmbeddingProvider(EmbeddingProvider):
    """Client for an OpenAI-compatible ``/embeddings`` endpoint."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        api_key_env: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url or EMBEDDING_API_URL
        self.model = model or EMBEDDING_MODEL
        self.api_key = api_key or os.environ.get(api_key_env or EMBEDDING_API_KEY_ENV, "")
        self.timeout = timeout or EMBEDDING_TIMEOUT
        self._http = session or requests

        # Usage tracking
        self.api_calls: int = 0
        self.prompt_tokens: int = 0

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ProviderError("Cannot embed empty text")
        try:
            response = self._http.post(
                self.api_url,
                json={"model": self.model, "input": text},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise ProviderError(f"Embedding request failed: {exc}") from exc
        self.api_calls += 1

        if not response.ok:
            raise ProviderError(
                f"Embedding API error: {response.status_code}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
            vector = payload["data"][0]["embedding"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ProviderError(f"Malformed embedding response: {exc}") from exc

        usage = payload.get("usage") if isinstance(payload, dict) else None
        if isinstance(usage, dict):
            self.prompt_tokens += int(usage.get("prompt_tokens", 0) or 0)
        return _coerce_vector(vector)


class SentenceTransformerProvider(EmbeddingProvider):
    """Local sentence-transformers model, loaded lazily on first use."""

    def __init__(
        self,
        model: Optional[str] = None,
        device: Optional[str] = None,
        normalize_embeddings: Optional[bool] = None,
        local_files_only: Optional[bool] = None,
    ) -> None:
        self.model = model or LOCAL_EMBEDDING_MODEL
        self.device = device or LOCAL_EMBEDDING_DEVICE
        self.normalize_embeddings = (
            LOCAL_EMBEDDING_NORMALIZE
            if normalize_embeddings is None
            else bool(normalize_embeddings)
        )
        self.local_files_only = (
            LOCAL_EMBEDDING_LOCAL_FILES_ONLY
            if local_files_only is None
            else bool(local_files_only)
        )
        self._model: Optional[Any] = None
        self._model_load_error: Optional[Exception] = None

    def _load_sentence_transformer(self, local_files_only: bool) -> Any:
        kwargs: Dict[str, Any] = {"device": self.device}
        if local_files_only:
            kwargs["local_files_only"] = True
        with _silence_process_output():
            try:
                return SentenceTransformer(self.model, **kwargs)
            except TypeError:
                kwargs.pop("local_files_only", None)
                return SentenceTransformer(self.model, **kwargs)

    def _ensure_model_loaded(self) -> Any:
        if self._model is not None:
            return self._model
        if self._model_load_error is not None:
            raise ProviderError("Embedding model is unavailable") from self._model_load_error
        if SentenceTransformer is None:
            self._model_load_error = RuntimeError(
                "sentence-transformers is required for local embeddings. "
                "Install pagewise[local] and retry."
            )
            raise ProviderError("Embedding model is unavailable") from self._model_load_error

        try:
            self._model = self._load_sentence_transformer(local_files_only=True)
            logger.debug("Loaded embedding model '%s' from local cache.", self.model)
        except Exception as local_exc:
            if self.local_files_only:
                self._model_load_error = local_exc
                raise ProviderError("Embedding model is unavailable") from local_exc
            logger.debug(
                "Embedding model '%s' not available locally, attempting remote load.",
                self.model,
            )
            try:
                self._model = self._load_sentence_transformer(local_files_only=False)
            except Exception as remote_exc:
                self._model_load_error = remote_exc
                logger.error(
                    "Failed to load sentence-transformer model '%s': %s",
                    self.model,
                    remote_exc,
                )
                raise ProviderError("Embedding model is unavailable") from remote_exc
        return self._model

    def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ProviderError("Cannot embed empty text")
        model = self._ensure_model_loaded()
        try:
            encoded = model.encode(
                [text],
                batch_size=1,
                convert_to_numpy=True,
                show_progress_bar=False,
                normalize_embeddings=self.normalize_embeddings,
            )
        except Exception as exc:
            raise ProviderError(f"Local embedding failed: {exc}") from exc
        rows = encoded.tolist() if hasattr(encoded, "tolist") else encoded
        if not rows:
            raise ProviderError("Local model returned no embedding")
        return _coerce_vector(rows[0])


@contextlib.contextmanager
def _silence_process_output():
    """Keep noisy model loading output off the terminal."""
    with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(
        io.StringIO()
    ):
        yield


def create_embedding_provider(kind: Optional[str] = None) -> EmbeddingProvider:
    """Build the provider named in configuration."""
    kind = (kind or EMBEDDING_PROVIDER).strip().lower()
    if kind in {"sentence_transformers", "sentence-transformers", "local"}:
        return SentenceTransformerProvider()
    if kind == "http":
        return HTTPEmbeddingProvider()
    raise ValueError(f"Unknown embedding provider: {kind}")


class EmbeddingCache:
    """Vectors for the current section set, keyed by ``Section.id``.

    Bound to one provider (and so one model); every vector stored has the
    same dimension. Failures leave the section without an entry.
    """

    def __init__(
        self, provider: EmbeddingProvider, min_content_chars: int = MIN_EMBEDDING_CHARS
    ) -> None:
        self.provider = provider
        self.min_content_chars = min_content_chars
        self._vectors: Dict[str, List[float]] = {}
        self._dimension: Optional[int] = None

        # Usage tracking
        self.texts_embedded: int = 0
        self.failures: int = 0

    @property
    def model(self) -> str:
        return self.provider.model

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, section_id: object) -> bool:
        return section_id in self._vectors

    def get(self, section_id: str) -> Optional[List[float]]:
        return self._vectors.get(section_id)

    def _checked(self, vector: List[float]) -> List[float]:
        if self._dimension is None:
            self._dimension = len(vector)
        elif len(vector) != self._dimension:
            raise ProviderError(
                f"Embedding dimension changed from {self._dimension} to {len(vector)}"
            )
        return vector

    def embed_query(self, text: str) -> List[float]:
        """Embed free text (not cached); raises ``ProviderError``."""
        vector = self._checked(self.provider.embed(text))
        self.texts_embedded += 1
        return vector

    def embed_section(self, section: Section) -> Optional[List[float]]:
        """Cached vector for ``section``; None when the provider fails."""
        cached = self._vectors.get(section.id)
        if cached is not None:
            return cached
        try:
            vector = self._checked(self.provider.embed(section.content))
        except ProviderError as exc:
            self.failures += 1
            logger.warning("Embedding failed for section %s: %s", section.id, exc)
            return None
        self._vectors[section.id] = vector
        self.texts_embedded += 1
        return vector

    def process_sections(self, sections: Iterable[Section]) -> List[Section]:
        """Embed eligible sections one at a time; return the ones now cached."""
        processed: List[Section] = []
        for section in embeddable_sections(sections, self.min_content_chars):
            if self.embed_section(section) is not None:
                processed.append(section)
        logger.debug(
            "Embedded %d sections with model %s (%d failures so far)",
            len(processed),
            self.model,
            self.failures,
        )
        return processed

    def clear(self) -> None:
        self._vectors.clear()
        self._dimension = None

    def get_usage_stats(self) -> dict:
        return {
            "texts_embedded": self.texts_embedded,
            "cached_sections": len(self._vectors),
            "failures": self.failures,
        }
