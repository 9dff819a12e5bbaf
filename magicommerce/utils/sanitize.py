# =============================================
# File: magicommerce/utils/sanitize.py
# Purpose: Hygiene for catalog text that is embedded into prompts
# =============================================
from __future__ import annotations
import re
from typing import Iterable

# Product copy is merchant-editable, so it is treated as untrusted prompt input
_INJECTION_CUES = [
    "ignore previous instruction",
    "ignore the previous instruction",
    "ignore all previous",
    "disregard previous instruction",
    "system prompt",
    "developer message",
    "you are chatgpt",
    "return only",
    "score of 1",
    "jailbreak",
]

_WHITESPACE_RE = re.compile(r"\s+")
_SENT_SPLIT_RE = re.compile(r'(?<=[.!?])\s+')

def collapse_ws(text: str) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()

def clip(text: str, max_chars: int) -> str:
    if max_chars and len(text) > max_chars:
        return text[:max_chars].rstrip() + "…"
    return text

def strip_injection_sentences(text: str, cues: Iterable[str] = _INJECTION_CUES) -> str:
    if not text:
        return ""
    cues_l = [c.lower() for c in cues]
    parts = _SENT_SPLIT_RE.split(text)
    kept = [p.strip() for p in parts if p.strip() and not any(c in p.lower() for c in cues_l)]
    return " ".join(kept)

def sanitize_product_text(text: str, max_chars: int = 300) -> str:
    """
    Collapse whitespace, drop sentences that read like instructions to the
    model, then truncate.
    """
    return clip(collapse_ws(strip_injection_sentences(text or "")), max_chars)
