"""
Data structures for the rule-based moderation core.

- `ModerationInput`: immutable per-message snapshot the classifier scores.
- `ModerationResult`: immutable classification output.
- `RiskLevel`, `ActionType`, `ViolationCategory`, `WarningSeverity`: the
  closed vocabularies shared by the classifier, the executor and the
  persistence layer. Enum values are the strings written to the database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

# Join age reported when there is no member record to measure from
UNKNOWN_JOIN_AGE_MINUTES = 999


class RiskLevel(Enum):
    """Risk bucket derived from the score. Ordered SAFE < SUSPICIOUS < DANGEROUS."""

    SAFE = "SAFE"
    SUSPICIOUS = "SUSPICIOUS"
    DANGEROUS = "DANGEROUS"

    @property
    def severity(self) -> int:
        return _RISK_SEVERITY[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.severity <= other.severity

    def __str__(self) -> str:
        return self.value


_RISK_SEVERITY = {RiskLevel.SAFE: 0, RiskLevel.SUSPICIOUS: 1, RiskLevel.DANGEROUS: 2}


class ActionType(Enum):
    """Moderation actions, recommended and executed.

    ``ERROR`` is never recommended; it only reports an execution that failed
    at the dispatch boundary.
    """

    ALLOW = "ALLOW"
    CAPTCHA = "CAPTCHA"
    WARN = "WARN"
    DELETE = "DELETE"
    MUTE = "MUTE"
    KICK = "KICK"
    ERROR = "ERROR"

    def __str__(self) -> str:
        return self.value


class ViolationCategory(Enum):
    """Tags attached to a result explaining what contributed to its score."""

    NEW_USER_UNVERIFIED = "NEW_USER_UNVERIFIED"
    SPAM = "SPAM"
    SCAM = "SCAM"
    HARASSMENT = "HARASSMENT"
    EXCESSIVE_LENGTH = "EXCESSIVE_LENGTH"
    EXCESSIVE_CAPS = "EXCESSIVE_CAPS"
    REPETITIVE_MESSAGING = "REPETITIVE_MESSAGING"
    RAPID_MESSAGING = "RAPID_MESSAGING"
    VERY_NEW_ACCOUNT = "VERY_NEW_ACCOUNT"
    NEW_ACCOUNT = "NEW_ACCOUNT"
    IMMEDIATE_POST_JOIN = "IMMEDIATE_POST_JOIN"
    RECENT_JOIN = "RECENT_JOIN"
    CONTAINS_LINKS = "CONTAINS_LINKS"
    HAS_ATTACHMENTS = "HAS_ATTACHMENTS"
    REPEAT_OFFENDER = "REPEAT_OFFENDER"

    def __str__(self) -> str:
        return self.value


class WarningSeverity(Enum):
    """Severity stored with each persisted warning."""

    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @classmethod
    def for_level(cls, level: RiskLevel) -> "WarningSeverity":
        return cls.HIGH if level is RiskLevel.DANGEROUS else cls.MEDIUM

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class ModerationInput:
    """Everything the classifier may look at for one message.

    Attributes:
        message_content: Raw text of the message.
        message_history: Summaries of the user's earlier messages in the same
            server, most recent first.
        user_account_age_days: Whole days since the account was created.
        server_join_age_minutes: Whole minutes since the member joined;
            ``UNKNOWN_JOIN_AGE_MINUTES`` when there is no member record.
        attachments_present: The message carries any attachment.
        links_present: The message text contains a link.
        image_uploaded: At least one attachment is an image.
        previous_warnings_count: Warnings on record for this user in this server.
        captcha_verified: The user has completed verification.
    """

    message_content: str
    message_history: Tuple[str, ...] = ()
    user_account_age_days: int = 0
    server_join_age_minutes: int = UNKNOWN_JOIN_AGE_MINUTES
    attachments_present: bool = False
    links_present: bool = False
    image_uploaded: bool = False
    previous_warnings_count: int = 0
    captcha_verified: bool = False

    def __post_init__(self) -> None:
        # Accept any sequence for history but keep the snapshot immutable
        if not isinstance(self.message_history, tuple):
            object.__setattr__(self, "message_history", tuple(self.message_history))


@dataclass(frozen=True, slots=True)
class ModerationResult:
    """Output of the classifier.

    ``detected_categories`` holds each category once, in the order the
    analyses found them. ``reasoning`` is for humans only and is never parsed.
    """

    risk_score: int
    risk_level: RiskLevel
    recommended_action: ActionType
    reasoning: str
    detected_categories: Tuple[ViolationCategory, ...] = field(default_factory=tuple)

    @property
    def category_names(self) -> list[str]:
        return [category.value for category in self.detected_categories]
