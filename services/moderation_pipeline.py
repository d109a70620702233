# services/moderation_pipeline.py
"""Normalizer -> signal extractor -> behaviour tracker -> risk scorer -> decision.

One pipeline instance lives on the app (``app.extensions``); it holds the
shared behaviour tracker and the configured profanity filter and scorer.
"""

import atexit
import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from services.behavior_tracker import BehaviorCheck, BehaviorTracker, content_hash
from services.identity_service import IdentityContext
from services.moderation_decision import Decision, ModerationDecisionEngine
from services.risk_scorer import RiskAssessment, RiskScorer
from utils.content_normalizer import NormalizedContent, ProfanityFilter, normalize_content
from utils.exceptions import RateLimitedError, ValidationError
from utils.signal_extractor import SignalBundle, extract_signals

logger = logging.getLogger(__name__)

EXTENSION_KEY = "moderation_pipeline"


@dataclass(frozen=True)
class PipelineResult:
    content: NormalizedContent
    signals: SignalBundle
    behavior: Optional[BehaviorCheck]
    assessment: RiskAssessment
    decision: Decision


class ModerationPipeline:
    def __init__(
        self,
        tracker: BehaviorTracker,
        scorer: RiskScorer,
        profanity_filter: ProfanityFilter,
        time_budget_ms: int = 50,
    ):
        self.tracker = tracker
        self.scorer = scorer
        self.profanity_filter = profanity_filter
        self.time_budget_ms = time_budget_ms

    @classmethod
    def from_config(cls, config) -> "ModerationPipeline":
        return cls(
            tracker=BehaviorTracker.from_config(config),
            scorer=RiskScorer.from_config(config),
            profanity_filter=ProfanityFilter(config.get("PROFANITY_EXTRA_WORDS")),
            time_budget_ms=config["SIGNAL_TIME_BUDGET_MS"],
        )

    def normalize(self, raw) -> NormalizedContent:
        normalized = normalize_content(raw, self.profanity_filter)
        if not normalized.text:
            raise ValidationError("Comment content is empty after sanitization", error_code="EMPTY_CONTENT")
        return normalized

    def _assess(self, normalized: NormalizedContent, behavior: Optional[BehaviorCheck], identity: IdentityContext):
        signals = extract_signals(normalized.text, normalized.profanity_hits, self.time_budget_ms)
        assessment = self.scorer.score(signals, behavior, identity.trust_level, identity.is_new)
        return signals, assessment

    def _reject_banned(self, normalized: NormalizedContent, identity: IdentityContext) -> PipelineResult:
        signals, assessment = self._assess(normalized, None, identity)
        decision = ModerationDecisionEngine.decide(assessment, trust_level=identity.trust_level, is_banned=True)
        logger.info("submission from banned identity %s rejected", identity.display)
        return PipelineResult(normalized, signals, None, assessment, decision)

    def evaluate_submission(self, raw, identity: IdentityContext, now: Optional[float] = None) -> PipelineResult:
        """Run a new submission through every stage.

        A submission arriving inside the minimum spacing window raises
        ``RateLimitedError`` (``SPAM_PREVENTION``) and counts as a violation.
        A banned identity is rejected before the tracker sees the submission.
        """
        now = time.time() if now is None else now
        normalized = self.normalize(raw)
        if identity.is_banned:
            return self._reject_banned(normalized, identity)
        behavior = self.tracker.record_and_check(identity.fingerprint, content_hash(normalized.text), now)
        if behavior.is_burst:
            wait = self.tracker.min_spacing_seconds - (behavior.seconds_since_last or 0)
            logger.info("burst from %s (violations=%d)", identity.display, behavior.violation_count)
            raise RateLimitedError(
                "Please wait before posting another comment",
                retry_after=max(1, math.ceil(wait)),
                error_code="SPAM_PREVENTION",
            )
        signals, assessment = self._assess(normalized, behavior, identity)
        decision = ModerationDecisionEngine.decide(
            assessment,
            trust_level=identity.trust_level,
            is_banned=identity.is_banned,
            behavior_suspicious=behavior.suspicious,
        )
        logger.info(
            "moderation decision %s (%s) score=%d flags=%s",
            decision.status, decision.reason_code, assessment.score, assessment.flags(),
        )
        return PipelineResult(normalized, signals, behavior, assessment, decision)

    def evaluate_edit(self, raw, identity: IdentityContext, prior_status: str, previous_flags: dict) -> PipelineResult:
        normalized = self.normalize(raw)
        snapshot = self.tracker.snapshot(identity.fingerprint)
        signals, assessment = self._assess(normalized, snapshot, identity)
        decision = ModerationDecisionEngine.decide_on_edit(
            prior_status,
            previous_flags,
            assessment,
            trust_level=identity.trust_level,
            behavior_suspicious=bool(snapshot and snapshot.suspicious),
        )
        logger.info(
            "edit decision %s (%s) score=%d flags=%s",
            decision.status, decision.reason_code, assessment.score, assessment.flags(),
        )
        return PipelineResult(normalized, signals, snapshot, assessment, decision)


def init_moderation(app) -> ModerationPipeline:
    pipeline = ModerationPipeline.from_config(app.config)
    app.extensions[EXTENSION_KEY] = pipeline
    app.extensions["behavior_tracker"] = pipeline.tracker
    if app.config.get("BEHAVIOR_SWEEP_ENABLED"):
        pipeline.tracker.start()
        atexit.register(pipeline.tracker.stop)
        app.logger.info("behaviour sweeper started (every %ss)", pipeline.tracker.sweep_interval_seconds)
    return pipeline


def get_pipeline() -> ModerationPipeline:
    return current_app.extensions[EXTENSION_KEY]
