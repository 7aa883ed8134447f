# apps/api/extract.py
from __future__ import annotations

import json as _json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI
from pydantic import BaseModel, field_validator

from config import settings
from errors import SummarizationError
from prompt import build_summary_prompt, build_tags_prompt

log = logging.getLogger("extract")


class TagsResult(BaseModel):
    tags: List[str] = []

    @field_validator("tags", mode="before")
    @classmethod
    def _canon(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        seen = set()
        out: List[str] = []
        for item in v:
            tag = str(item or "").strip().lstrip("#").lower()
            if not tag or tag in seen:
                continue
            seen.add(tag)
            out.append(tag)
        return out


def _client() -> AsyncOpenAI:
    if not settings.openai_api_key:
        raise SummarizationError("OPENAI_API_KEY missing; skipping extraction")
    return AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.ai_call_timeout_seconds)


def _parse_json(content: str) -> Optional[Dict[str, Any]]:
    try:
        return _json.loads(content)
    except ValueError:
        m = re.search(r"\{[\s\S]*\}", content)
        if m:
            try:
                return _json.loads(m.group(0))
            except ValueError:
                return None
        return None


async def _chat(prompt: str, *, json_mode: bool = False) -> str:
    client = _client()
    kwargs: Dict[str, Any] = {}
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}
    try:
        resp = await client.chat.completions.create(
            model=(settings.openai_chat_model or "gpt-4.1-mini"),
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
    except Exception as exc:
        log.warning("openai_call_failed: %s", exc)
        raise SummarizationError("Chat completion failed") from exc
    return (resp.choices[0].message.content or "").strip()


async def summarize_video(
    video_url: str, caption: Optional[str], metadata: Optional[Dict[str, Any]]
) -> str:
    summary = await _chat(build_summary_prompt(video_url, caption, metadata))
    if not summary:
        raise SummarizationError("Failed to generate video analysis")
    log.info("openai_summary_ok: chars=%d", len(summary))
    return summary


async def extract_tags(summary: str) -> List[str]:
    if not (summary or "").strip():
        return []
    content = await _chat(build_tags_prompt(summary, settings.max_tags), json_mode=True)
    log.info("openai_extract_raw_json: %s", content)
    raw = _parse_json(content or "{}")
    if raw is None:
        raise SummarizationError("Failed to parse tags")
    return TagsResult(**raw).tags[: settings.max_tags]
