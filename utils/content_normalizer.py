# -*- coding: utf-8 -*-
"""Content normalizer.

Turns raw user text into the canonical form stored on a comment:

1. bytes are decoded as UTF-8 with replacement, Unicode is NFKC-folded;
2. markup is stripped (script/style bodies dropped, entities unescaped)
   until the text stops changing;
3. control and zero-width characters are removed, whitespace collapsed;
4. profanity is masked with ``*``.

``normalize(normalize(x)) == normalize(x)`` for any input, and no input
raises.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

_MAX_MARKUP_PASSES = 5
_SKIP_TAGS = {"script", "style", "iframe", "object", "embed", "noscript", "template"}

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\u200b-\u200f\u2028-\u202e\u2060-\u2064\ufeff]")
_WHITESPACE_RE = re.compile(r"\s+")
_FALLBACK_TAG_RE = re.compile(r"<[^<>]{0,2000}>")
_TAG_OPEN_RE = re.compile(r"<(?=[A-Za-z/!?])")

PROFANITY_WORDS: frozenset[str] = frozenset({
    "fuck", "fucking", "fucker", "fucked", "motherfucker",
    "shit", "shitty", "bullshit",
    "asshole", "bitch", "bastard", "cunt", "dick", "dickhead",
    "prick", "twat", "wanker", "piss", "pissed", "slut", "whore",
    "kys", "kill yourself",
})


class _TextExtractor(HTMLParser):
    """Collects text nodes, dropping the bodies of script-like elements."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _SKIP_TAGS:
            self._skip_depth += 1
        elif tag in ("br", "p", "div", "li"):
            self._parts.append(" ")

    def handle_endtag(self, tag):
        if tag in _SKIP_TAGS and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            self._parts.append(data)

    def text(self) -> str:
        return "".join(self._parts)


def _strip_markup_once(text: str) -> str:
    parser = _TextExtractor()
    try:
        parser.feed(text)
        parser.close()
    except Exception:  # HTMLParser on hostile input; fall back to a bounded regex
        logger.warning("markup parser failed, using regex fallback", exc_info=True)
        return _FALLBACK_TAG_RE.sub(" ", text)
    return parser.text()


def strip_markup(text: str) -> str:
    """Strip tags until a fixed point, then drop any dangling tag opener."""
    for _ in range(_MAX_MARKUP_PASSES):
        stripped = _strip_markup_once(text)
        if stripped == text:
            break
        text = stripped
    else:
        # still producing markup after unescaping, so remove the delimiters outright
        return text.replace("<", "").replace(">", "")
    return _TAG_OPEN_RE.sub("", text)


def _profanity_pattern(words: Iterable[str]) -> re.Pattern[str]:
    ordered = sorted({w.strip().lower() for w in words if w and w.strip()}, key=len, reverse=True)
    alternation = "|".join(re.escape(w).replace(r"\ ", r"\s") for w in ordered)
    return re.compile(rf"(?<![\w*])(?:{alternation})(?![\w*])", re.IGNORECASE)


class ProfanityFilter:
    """Word-boundary profanity detection and masking."""

    def __init__(self, extra_words: Optional[Iterable[str]] = None):
        words = set(PROFANITY_WORDS)
        if extra_words:
            words.update(w.lower() for w in extra_words if w)
        self.words = frozenset(words)
        self._pattern = _profanity_pattern(self.words)

    def count(self, text: str) -> int:
        return len(self._pattern.findall(text or ""))

    def mask(self, text: str) -> tuple[str, int]:
        hits = 0

        def _mask(match: re.Match) -> str:
            nonlocal hits
            hits += 1
            return re.sub(r"\S", "*", match.group(0))

        return self._pattern.sub(_mask, text or ""), hits


_default_filter = ProfanityFilter()


@dataclass(frozen=True)
class NormalizedContent:
    text: str
    profanity_hits: int = 0

    @property
    def has_profanity(self) -> bool:
        return self.profanity_hits > 0


def _to_text(raw) -> str:
    if raw is None:
        return ""
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return str(raw)
    return raw


def _clean_once(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    text = _CONTROL_RE.sub("", text)
    text = strip_markup(text)
    text = _CONTROL_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _clean(text: str) -> str:
    # each step can expose input for an earlier one (entities -> tags, controls inside tags)
    for _ in range(_MAX_MARKUP_PASSES):
        cleaned = _clean_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned
    text = text.replace("<", "").replace(">", "")
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_content(raw, profanity_filter: Optional[ProfanityFilter] = None) -> NormalizedContent:
    """Normalize raw input and report how many profane words were masked."""
    pf = profanity_filter or _default_filter
    try:
        text = _clean(_to_text(raw))
    except Exception:
        logger.exception("normalization failed, degrading to best-effort strip")
        text = _WHITESPACE_RE.sub(" ", _CONTROL_RE.sub("", _FALLBACK_TAG_RE.sub(" ", _to_text(raw)))).strip()
        text = text.replace("<", "").replace(">", "")
    masked, hits = pf.mask(text)
    return NormalizedContent(text=masked, profanity_hits=hits)


def normalize(raw, profanity_filter: Optional[ProfanityFilter] = None) -> str:
    return normalize_content(raw, profanity_filter).text
