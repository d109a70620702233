# services/risk_scorer.py
"""Risk scoring.

One additive 0-100 scale. Each entry in ``SIGNAL_WEIGHTS`` maps a signal to
its weight; count-valued signals contribute ``weight * count``, boolean ones
contribute ``weight`` once. The total is clamped to ``MAX_SCORE``.

Thresholds (configurable): ``is_spam`` at 15, ``is_suspicious`` at 3.
Profanity is tracked as its own flag and does not add to the score.
A first-time identity adds ``new_identity``, which stays below the suspicious
threshold on its own and only tips content that already carries a signal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from constants.moderation import TrustLevel
from services.behavior_tracker import BehaviorCheck
from utils.signal_extractor import SignalBundle

MAX_SCORE = 100
DEFAULT_SPAM_THRESHOLD = 15
DEFAULT_SUSPICIOUS_THRESHOLD = 3

SIGNAL_WEIGHTS: dict[str, int] = {
    "url": 15,
    "email": 10,
    "phone": 8,
    "repeated_phrase": 8,
    "repeated_chars": 6,
    "excessive_caps": 6,
    "urgency_keyword": 4,
    "commercial_keyword": 3,
    "suspicious_keyword": 2,
    "length_outlier": 2,
    "duplicate_recent": 10,
    "new_identity": 2,
    "low_trust": 5,
    "flagged_identity": 10,
}


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    has_profanity: bool = False
    is_spam: bool = False
    is_suspicious: bool = False
    contains_links: bool = False
    breakdown: dict = field(default_factory=dict)

    @property
    def has_flags(self) -> bool:
        return self.has_profanity or self.is_spam or self.is_suspicious or self.contains_links

    def flags(self) -> dict:
        return {
            "has_profanity": self.has_profanity,
            "is_spam": self.is_spam,
            "is_suspicious": self.is_suspicious,
            "contains_links": self.contains_links,
        }


def _signal_counts(signals: SignalBundle) -> dict[str, int]:
    return {
        "url": signals.url_count,
        "email": signals.email_count,
        "phone": signals.phone_count,
        "repeated_phrase": signals.repeated_phrases,
        "repeated_chars": signals.repeated_char_runs,
        "excessive_caps": int(signals.excessive_caps),
        "urgency_keyword": signals.urgency_hits,
        "commercial_keyword": signals.commercial_hits,
        "suspicious_keyword": signals.suspicious_hits,
        "length_outlier": int(signals.length_outlier),
    }


class RiskScorer:
    def __init__(
        self,
        spam_threshold: int = DEFAULT_SPAM_THRESHOLD,
        suspicious_threshold: int = DEFAULT_SUSPICIOUS_THRESHOLD,
        weights: Optional[dict[str, int]] = None,
    ):
        self.spam_threshold = spam_threshold
        self.suspicious_threshold = suspicious_threshold
        self.weights = dict(SIGNAL_WEIGHTS)
        if weights:
            self.weights.update(weights)

    @classmethod
    def from_config(cls, config) -> "RiskScorer":
        return cls(
            spam_threshold=config["SPAM_SCORE_THRESHOLD"],
            suspicious_threshold=config["SUSPICIOUS_SCORE_THRESHOLD"],
        )

    def score(
        self,
        signals: SignalBundle,
        behavior: Optional[BehaviorCheck] = None,
        trust_level: str = TrustLevel.NORMAL.value,
        is_new: bool = False,
    ) -> RiskAssessment:
        has_profanity = signals.has_profanity
        contains_links = signals.contains_url

        if signals.timed_out:
            return RiskAssessment(
                score=MAX_SCORE,
                has_profanity=has_profanity,
                is_spam=True,
                is_suspicious=True,
                contains_links=contains_links,
                breakdown={"timed_out": MAX_SCORE},
            )

        counts = _signal_counts(signals)
        if behavior is not None:
            counts["duplicate_recent"] = int(behavior.is_duplicate_recent)
            counts["flagged_identity"] = int(behavior.suspicious)
        # first sighting by the tracker or an is_new claim; trusted identities are exempt
        if trust_level != TrustLevel.TRUSTED.value:
            counts["new_identity"] = int(bool(is_new) or bool(behavior is not None and behavior.is_new))
        counts["low_trust"] = int(trust_level == TrustLevel.LOW.value)

        breakdown = {}
        for name, count in counts.items():
            if count:
                breakdown[name] = self.weights.get(name, 0) * count
        total = min(MAX_SCORE, sum(breakdown.values()))

        is_suspicious = total >= self.suspicious_threshold
        if behavior is not None and behavior.is_duplicate_recent:
            is_suspicious = True

        return RiskAssessment(
            score=total,
            has_profanity=has_profanity,
            is_spam=total >= self.spam_threshold,
            is_suspicious=is_suspicious,
            contains_links=contains_links,
            breakdown=breakdown,
        )
