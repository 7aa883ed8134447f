# apps/api/prompt.py
import json
from typing import Any, Dict, Optional


def build_summary_prompt(video_url: str, caption: Optional[str], metadata: Optional[Dict[str, Any]]) -> str:
    categories = ", ".join((metadata or {}).get("categories") or []) or "none selected"
    location = (metadata or {}).get("location") or "unknown"
    return f"""You are analyzing a short-form video posted to a social video app so that it can be recommended to the right viewers.

## Video

- URL: {video_url}
- Caption written by the creator: {(caption or '').strip() or 'n/a'}
- Categories chosen by the creator: {categories}
- Location: {location}

## Your Task

Provide a comprehensive analysis of this video in 3-6 sentences:
- What the video shows and what it is about
- Its tone and style (funny, informative, relaxing, ...)
- Who would most enjoy it

Write plain prose. Do not use headings, lists or markdown. Do not speculate about the creator's identity.
"""


def build_tags_prompt(summary: str, max_tags: int) -> str:
    example = json.dumps({"tags": ["tag1", "tag2", "tag3", "tag4", "tag5"]})
    return f"""Analyze this video summary and extract relevant content tags.

Summary to analyze:
<summary>
{summary.strip()}
</summary>

Rules:
- At most {max_tags} tags
- Short lowercase labels, one concept per tag
- No hashtags, no duplicates

Return format (JSON object only):
{example}
"""
