# -*- coding: utf-8 -*-
"""Signal extractor.

Derives a structured bundle of pattern signals from normalized text. Every
pattern in ``SIGNAL_PATTERNS`` uses bounded quantifiers so a single search is
linear in the input; repeated characters and repeated phrases are found with
plain scans instead of back-referencing regexes. The whole extraction runs
against a time budget: once it is exceeded the bundle comes back with
``timed_out=True`` and the scorer treats it as maximally suspicious.
"""

from __future__ import annotations

import itertools
import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_TIME_BUDGET_MS = 50
MAX_SCAN_LENGTH = 10_000
SHORT_CONTENT_CHARS = 10
LONG_CONTENT_CHARS = 800
REPEATED_CHAR_RUN = 6
CAPS_RUN = 10
MAX_PHRASE_WORDS = 4

SIGNAL_PATTERNS: dict[str, re.Pattern[str]] = {
    "urls": re.compile(r"(?:\bhttps?://|\bwww\.)[^\s<>\"']{1,2048}", re.IGNORECASE),
    "emails": re.compile(r"\b[A-Za-z0-9._%+-]{1,64}@[A-Za-z0-9-]{1,63}(?:\.[A-Za-z0-9-]{1,63}){0,4}\.[A-Za-z]{2,24}\b"),
    "phones": re.compile(
        r"(?<!\w)(?:\+?\d{1,3}[\s.-]?)?(?:\(\d{3}\)|\d{3})[\s.-]\d{3}[\s.-]\d{4}(?!\w)"
        r"|\b(?:\d{1,3}[-.]){2,4}\d{1,4}\b"
    ),
    "commercial": re.compile(
        r"\b(?:buy|sell|cheap|free|discount|offer|deal|visit|click|website|link|money|cash|prize|win|winner)\b",
        re.IGNORECASE,
    ),
    "urgency": re.compile(
        r"\b(?:urgent|immediate|asap|hurry|limited\stime|act\snow|don'?t\smiss|expires|deadline)\b",
        re.IGNORECASE,
    ),
    "suspicious": re.compile(
        r"\b(?:lottery|million|inheritance|beneficiary|viagra|cialis|pharmacy|pills"
        r"|loan|credit|mortgage|investment|profit|guarantee|risk.?free|no.?obligation)\b",
        re.IGNORECASE,
    ),
    "caps_run": re.compile(rf"[A-Z]{{{CAPS_RUN},}}"),
}

_WORD_RE = re.compile(r"\S+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


class _BudgetExceeded(Exception):
    pass


@dataclass
class SignalBundle:
    length: int = 0
    word_count: int = 0
    sentence_count: int = 0
    url_count: int = 0
    email_count: int = 0
    phone_count: int = 0
    commercial_hits: int = 0
    urgency_hits: int = 0
    suspicious_hits: int = 0
    repeated_char_runs: int = 0
    longest_char_run: int = 0
    repeated_phrases: int = 0
    excessive_caps: bool = False
    profanity_hits: int = 0
    timed_out: bool = False

    @property
    def contains_url(self) -> bool:
        return self.url_count > 0

    @property
    def contains_email(self) -> bool:
        return self.email_count > 0

    @property
    def contains_phone(self) -> bool:
        return self.phone_count > 0

    @property
    def has_profanity(self) -> bool:
        return self.profanity_hits > 0

    @property
    def keyword_hits(self) -> int:
        return self.commercial_hits + self.urgency_hits

    @property
    def too_short(self) -> bool:
        return self.length < SHORT_CONTENT_CHARS

    @property
    def too_long(self) -> bool:
        return self.length > LONG_CONTENT_CHARS

    @property
    def length_outlier(self) -> bool:
        return self.too_short or self.too_long

    def to_dict(self) -> dict:
        return {
            "length": self.length,
            "word_count": self.word_count,
            "sentence_count": self.sentence_count,
            "url_count": self.url_count,
            "email_count": self.email_count,
            "phone_count": self.phone_count,
            "keyword_hits": self.keyword_hits,
            "suspicious_hits": self.suspicious_hits,
            "longest_char_run": self.longest_char_run,
            "repeated_phrases": self.repeated_phrases,
            "excessive_caps": self.excessive_caps,
            "has_profanity": self.has_profanity,
            "too_short": self.too_short,
            "too_long": self.too_long,
            "timed_out": self.timed_out,
        }


def _char_runs(text: str) -> tuple[int, int]:
    runs = 0
    longest = 0
    for ch, group in itertools.groupby(text):
        if ch.isspace() or ch == "*":
            continue
        size = sum(1 for _ in group)
        longest = max(longest, size)
        if size >= REPEATED_CHAR_RUN:
            runs += 1
    return runs, longest


def _repeated_phrases(words: list[str]) -> int:
    """Count distinct word sequences (1-4 words) repeated three times in a row."""
    found = set()
    total = len(words)
    for size in range(1, MAX_PHRASE_WORDS + 1):
        for i in range(0, total - 3 * size + 1):
            phrase = words[i:i + size]
            if len(" ".join(phrase)) < 3:
                continue
            if phrase == words[i + size:i + 2 * size] == words[i + 2 * size:i + 3 * size]:
                found.add(tuple(phrase))
    return len(found)


def _excessive_caps(text: str) -> bool:
    if SIGNAL_PATTERNS["caps_run"].search(text):
        return True
    letters = [c for c in text if c.isalpha()]
    if len(letters) < 20:
        return False
    upper = sum(1 for c in letters if c.isupper())
    return upper / len(letters) >= 0.7


def extract_signals(
    text: str,
    profanity_hits: int = 0,
    time_budget_ms: Optional[int] = None,
) -> SignalBundle:
    """Extract signals from normalized text within ``time_budget_ms``."""
    text = text or ""
    bundle = SignalBundle(length=len(text), profanity_hits=profanity_hits)
    if len(text) > MAX_SCAN_LENGTH:
        logger.warning("content of %d chars exceeds scan limit, marking as suspicious", len(text))
        bundle.timed_out = True
        return bundle

    budget = (time_budget_ms if time_budget_ms is not None else DEFAULT_TIME_BUDGET_MS) / 1000.0
    deadline = time.perf_counter() + budget

    def _check():
        if time.perf_counter() > deadline:
            raise _BudgetExceeded()

    try:
        bundle.url_count = len(SIGNAL_PATTERNS["urls"].findall(text))
        _check()
        bundle.email_count = len(SIGNAL_PATTERNS["emails"].findall(text))
        _check()
        bundle.phone_count = len(SIGNAL_PATTERNS["phones"].findall(text))
        _check()
        bundle.commercial_hits = len(SIGNAL_PATTERNS["commercial"].findall(text))
        bundle.urgency_hits = len(SIGNAL_PATTERNS["urgency"].findall(text))
        bundle.suspicious_hits = len(SIGNAL_PATTERNS["suspicious"].findall(text))
        _check()
        bundle.repeated_char_runs, bundle.longest_char_run = _char_runs(text)
        bundle.excessive_caps = _excessive_caps(text)
        _check()
        words = _WORD_RE.findall(text.lower())
        bundle.word_count = len(words)
        bundle.sentence_count = len([s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()])
        bundle.repeated_phrases = _repeated_phrases(words)
        _check()
    except _BudgetExceeded:
        logger.warning("signal extraction exceeded %.0fms budget, marking as suspicious", budget * 1000)
        bundle.timed_out = True
    return bundle
