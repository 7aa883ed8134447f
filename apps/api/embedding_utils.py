# apps/api/embedding_utils.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from openai import AsyncOpenAI

from config import settings
from errors import EmbeddingProviderError, ValidationError

log = logging.getLogger("embeddings")


def _format_list(items: Iterable[str]) -> str:
    values = [value.strip() for value in items if value and value.strip()]
    return ", ".join(values) if values else "n/a"


def _clip(text: str, max_chars: int) -> str:
    return text.strip()[:max_chars]


def build_video_embedding_text(
    *,
    caption: Optional[str],
    summary: Optional[str],
    transcription: Optional[str],
    metadata: Optional[Dict[str, Any]],
) -> str:
    """Assemble the document a video's content embedding is computed from."""

    categories = (metadata or {}).get("categories") or []
    lines = [
        f"Caption: {(caption or '').strip()}",
        "",
        f"Summary: {(summary or '').strip()}",
        "",
        f"Transcript: {_clip(transcription or '', settings.transcript_max_chars)}",
        "",
        f"Categories: {_format_list(categories)}",
    ]
    return "\n".join(lines)


def build_interest_text(interests: Sequence[str]) -> str:
    return f"User is interested in: {', '.join(i.strip() for i in interests if i and i.strip())}"


def validate_dimensions(vector: Sequence[float]) -> List[float]:
    expected = settings.embedding_dimensions
    if len(vector) != expected:
        raise ValidationError(
            f"Embedding has {len(vector)} dimensions, expected {expected}"
        )
    return [float(x) for x in vector]


def _get_client() -> AsyncOpenAI:
    api_key = (settings.openai_api_key or "").strip()
    if not api_key:
        raise EmbeddingProviderError("openai_embeddings_disabled: missing OPENAI_API_KEY")
    return AsyncOpenAI(api_key=api_key, timeout=settings.ai_call_timeout_seconds)


async def generate_embedding(text: str) -> List[float]:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Cannot embed empty text")

    client = _get_client()
    model = settings.openai_embedding_model or "text-embedding-3-small"
    try:
        response = await client.embeddings.create(
            model=model,
            input=text,
            dimensions=settings.embedding_dimensions,
        )
    except Exception as exc:
        log.warning("openai_embeddings_failed: %s", exc)
        raise EmbeddingProviderError("Embedding request failed") from exc

    data = response.data[0] if response.data else None
    vector = getattr(data, "embedding", None)
    if not vector:
        log.warning("openai_embeddings_missing_vector: data=%s", data)
        raise EmbeddingProviderError("Embedding response had no vector")
    return validate_dimensions(vector)
