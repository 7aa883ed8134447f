# apps/api/transcribe.py
from __future__ import annotations

import logging
import os
from urllib.parse import urlparse

import httpx
from openai import AsyncOpenAI

from config import settings
from errors import TranscriptionError

log = logging.getLogger("transcribe")


async def _download(video_url: str) -> bytes:
    async with httpx.AsyncClient(timeout=settings.ai_call_timeout_seconds, follow_redirects=True) as client:
        resp = await client.get(video_url)
        resp.raise_for_status()
        return resp.content


async def transcribe_video(video_url: str) -> str:
    if not settings.openai_api_key:
        raise TranscriptionError("OPENAI_API_KEY missing; skipping transcription")

    try:
        data = await _download(video_url)
    except httpx.HTTPError as exc:
        log.warning("transcribe_download_failed: url=%s err=%s", video_url, exc)
        raise TranscriptionError("Could not download video") from exc

    filename = os.path.basename(urlparse(video_url).path) or "video.mp4"
    client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.ai_call_timeout_seconds)
    try:
        text = await client.audio.transcriptions.create(
            model=settings.openai_transcription_model,
            file=(filename, data),
            response_format="text",
        )
    except Exception as exc:
        log.warning("openai_transcription_failed: %s", exc)
        raise TranscriptionError("Transcription request failed") from exc

    transcript = str(text or "").strip()
    log.info("transcription_ok: chars=%d", len(transcript))
    return transcript
