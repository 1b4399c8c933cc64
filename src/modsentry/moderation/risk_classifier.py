"""
Rule-based risk classification.

`classify` is a pure function of its `ModerationInput`: no I/O, no clock, no
configuration. It runs a fixed sequence of analyses, each returning the
points it contributes and the categories it found, then clamps the total,
buckets it into a `RiskLevel` and derives the recommended action and the
explanation text.

Unverified users who look new or have prior warnings never reach the
analyses: the CAPTCHA gate answers for them first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from modsentry.datatypes.moderation_datatypes import (
    ActionType,
    ModerationInput,
    ModerationResult,
    RiskLevel,
    ViolationCategory,
)
from modsentry.moderation.action_decider import decide
from modsentry.moderation.reasoning import CAPTCHA_REASONING, explain
from modsentry.moderation.rules import CONTENT_RULE_FAMILIES

MIN_SCORE = 0
MAX_SCORE = 100

# Level breakpoints: score <= SAFE_MAX is SAFE, <= SUSPICIOUS_MAX is SUSPICIOUS
SAFE_MAX_SCORE = 30
SUSPICIOUS_MAX_SCORE = 65

CAPTCHA_SCORE = 50
CAPTCHA_ACCOUNT_AGE_DAYS = 7
CAPTCHA_JOIN_AGE_MINUTES = 10

EXCESSIVE_LENGTH_CHARS = 1500
CAPS_MIN_LENGTH = 20
CAPS_RATIO_THRESHOLD = 0.7

REPETITION_WINDOW = 3
RAPID_MESSAGING_HISTORY = 5

REPEAT_OFFENDER_POINTS_PER_WARNING = 10
REPEAT_OFFENDER_CAP = 25


@dataclass(slots=True)
class AnalysisResult:
    """Points and categories contributed by one analysis step."""

    score: int = 0
    categories: List[ViolationCategory] = field(default_factory=list)

    def add(self, category: ViolationCategory, points: int) -> None:
        self.score += points
        self.categories.append(category)


def requires_captcha(moderation_input: ModerationInput) -> bool:
    """True when an unverified user is new, just joined, or already warned."""
    if moderation_input.captcha_verified:
        return False
    return (
        moderation_input.user_account_age_days < CAPTCHA_ACCOUNT_AGE_DAYS
        or moderation_input.server_join_age_minutes < CAPTCHA_JOIN_AGE_MINUTES
        or moderation_input.previous_warnings_count > 0
    )


def analyze_content(content: str) -> AnalysisResult:
    analysis = AnalysisResult()

    for family in CONTENT_RULE_FAMILIES:
        points = family.score(content)
        if points > 0:
            analysis.add(family.category, points)

    if len(content) > EXCESSIVE_LENGTH_CHARS:
        analysis.add(ViolationCategory.EXCESSIVE_LENGTH, 10)

    if len(content) > CAPS_MIN_LENGTH:
        uppercase = sum(1 for char in content if "A" <= char <= "Z")
        if uppercase / len(content) > CAPS_RATIO_THRESHOLD:
            analysis.add(ViolationCategory.EXCESSIVE_CAPS, 10)

    return analysis


def analyze_behavior(message_history: Sequence[str], current_message: str) -> AnalysisResult:
    """Score repetition of the current message and overall message volume."""
    analysis = AnalysisResult()

    if len(message_history) >= REPETITION_WINDOW:
        current = current_message.lower()
        if all(previous.lower() == current for previous in message_history[:REPETITION_WINDOW]):
            analysis.add(ViolationCategory.REPETITIVE_MESSAGING, 20)

    if len(message_history) >= RAPID_MESSAGING_HISTORY:
        analysis.add(ViolationCategory.RAPID_MESSAGING, 15)

    return analysis


def analyze_account(account_age_days: int, join_age_minutes: int) -> AnalysisResult:
    analysis = AnalysisResult()

    if account_age_days < 1:
        analysis.add(ViolationCategory.VERY_NEW_ACCOUNT, 20)
    elif account_age_days < 7:
        analysis.add(ViolationCategory.NEW_ACCOUNT, 10)

    if join_age_minutes < 5:
        analysis.add(ViolationCategory.IMMEDIATE_POST_JOIN, 15)
    elif join_age_minutes < 30:
        analysis.add(ViolationCategory.RECENT_JOIN, 8)

    return analysis


def analyze_attachments(attachments_present: bool, links_present: bool, image_uploaded: bool) -> AnalysisResult:
    analysis = AnalysisResult()

    if links_present:
        analysis.add(ViolationCategory.CONTAINS_LINKS, 10)

    if attachments_present or image_uploaded:
        analysis.add(ViolationCategory.HAS_ATTACHMENTS, 5)

    return analysis


def analyze_history(previous_warnings_count: int) -> AnalysisResult:
    analysis = AnalysisResult()
    if previous_warnings_count > 0:
        points = min(previous_warnings_count * REPEAT_OFFENDER_POINTS_PER_WARNING, REPEAT_OFFENDER_CAP)
        analysis.add(ViolationCategory.REPEAT_OFFENDER, points)
    return analysis


def clamp_score(score: int) -> int:
    return min(max(score, MIN_SCORE), MAX_SCORE)


def determine_risk_level(score: int) -> RiskLevel:
    if score <= SAFE_MAX_SCORE:
        return RiskLevel.SAFE
    if score <= SUSPICIOUS_MAX_SCORE:
        return RiskLevel.SUSPICIOUS
    return RiskLevel.DANGEROUS


def captcha_result() -> ModerationResult:
    """The fixed result returned whenever the CAPTCHA gate triggers."""
    return ModerationResult(
        risk_score=CAPTCHA_SCORE,
        risk_level=RiskLevel.SUSPICIOUS,
        recommended_action=ActionType.CAPTCHA,
        reasoning=CAPTCHA_REASONING,
        detected_categories=(ViolationCategory.NEW_USER_UNVERIFIED,),
    )


def classify(moderation_input: ModerationInput) -> ModerationResult:
    """Score one message snapshot and recommend an action.

    Never raises for a well-formed snapshot; empty content and empty history
    are ordinary inputs.
    """
    if requires_captcha(moderation_input):
        return captcha_result()

    analyses = (
        analyze_content(moderation_input.message_content),
        analyze_behavior(moderation_input.message_history, moderation_input.message_content),
        analyze_account(moderation_input.user_account_age_days, moderation_input.server_join_age_minutes),
        analyze_attachments(
            moderation_input.attachments_present,
            moderation_input.links_present,
            moderation_input.image_uploaded,
        ),
        analyze_history(moderation_input.previous_warnings_count),
    )

    categories: List[ViolationCategory] = []
    for analysis in analyses:
        for category in analysis.categories:
            if category not in categories:
                categories.append(category)

    score = clamp_score(sum(analysis.score for analysis in analyses))
    level = determine_risk_level(score)
    warning_count = moderation_input.previous_warnings_count

    return ModerationResult(
        risk_score=score,
        risk_level=level,
        recommended_action=decide(score, level, warning_count),
        reasoning=explain(score, level, categories, warning_count),
        detected_categories=tuple(categories),
    )
