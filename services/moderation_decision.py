# services/moderation_decision.py
"""Moderation decision engine.

Rules for a new submission, first match wins:

1. banned identity            -> rejected
2. spam and profanity         -> rejected
3. trusted and no flags       -> approved
4. any flag, or the identity's behaviour record is suspicious -> pending
5. otherwise                  -> approved

An edit re-enters at rule 2 only when the new content raises a flag the
previous version did not have; otherwise the comment keeps its status.
"""

from dataclasses import dataclass
from typing import Optional

from constants.moderation import (
    ACTION_TARGET_STATUS,
    CommentStatus,
    TrustLevel,
    validate_moderator_action,
)
from services.risk_scorer import RiskAssessment
from utils.exceptions import TerminalStateError

FLAG_NAMES = ("has_profanity", "is_spam", "is_suspicious", "contains_links")


@dataclass(frozen=True)
class Decision:
    status: str
    reason_code: str

    @property
    def requires_moderation(self) -> bool:
        return self.status == CommentStatus.PENDING.value


class ModerationDecisionEngine:

    @staticmethod
    def _from_rule_two(assessment: RiskAssessment, trust_level: str, behavior_suspicious: bool) -> Decision:
        if assessment.is_spam and assessment.has_profanity:
            return Decision(CommentStatus.REJECTED.value, "SPAM_WITH_PROFANITY")
        if trust_level == TrustLevel.TRUSTED.value and not assessment.has_flags:
            return Decision(CommentStatus.APPROVED.value, "TRUSTED")
        if assessment.has_profanity:
            return Decision(CommentStatus.PENDING.value, "PROFANITY")
        if assessment.is_spam:
            return Decision(CommentStatus.PENDING.value, "SPAM")
        if assessment.is_suspicious:
            return Decision(CommentStatus.PENDING.value, "SUSPICIOUS")
        if behavior_suspicious:
            return Decision(CommentStatus.PENDING.value, "SUSPICIOUS_BEHAVIOR")
        return Decision(CommentStatus.APPROVED.value, "CLEAN")

    @staticmethod
    def decide(
        assessment: RiskAssessment,
        trust_level: str = TrustLevel.NORMAL.value,
        is_banned: bool = False,
        behavior_suspicious: bool = False,
    ) -> Decision:
        if is_banned:
            return Decision(CommentStatus.REJECTED.value, "IDENTITY_BANNED")
        return ModerationDecisionEngine._from_rule_two(assessment, trust_level, behavior_suspicious)

    @staticmethod
    def new_flags(previous: dict, assessment: RiskAssessment) -> list[str]:
        current = assessment.flags()
        return [name for name in FLAG_NAMES if current[name] and not previous.get(name)]

    @staticmethod
    def decide_on_edit(
        prior_status: str,
        previous_flags: dict,
        assessment: RiskAssessment,
        trust_level: str = TrustLevel.NORMAL.value,
        behavior_suspicious: bool = False,
    ) -> Decision:
        if not ModerationDecisionEngine.new_flags(previous_flags, assessment):
            return Decision(prior_status, "UNCHANGED")
        return ModerationDecisionEngine._from_rule_two(assessment, trust_level, behavior_suspicious)

    @staticmethod
    def target_status(action: str, is_redacted: bool = False, comment_id: Optional[int] = None) -> str:
        """Status a moderator action moves a comment to; redacted comments are final."""
        validate_moderator_action(action)
        if is_redacted:
            raise TerminalStateError(
                f"Comment {comment_id} has been deleted and can no longer be moderated"
                if comment_id is not None else "Comment has been deleted and can no longer be moderated",
                error_code="COMMENT_REDACTED",
            )
        return ACTION_TARGET_STATUS[action]
