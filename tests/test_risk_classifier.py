"""Tests for the risk classifier."""

import pytest

from modsentry.datatypes.moderation_datatypes import (
    ActionType,
    ModerationInput,
    RiskLevel,
    ViolationCategory,
)
from modsentry.moderation import risk_classifier
from modsentry.moderation.reasoning import CAPTCHA_REASONING
from modsentry.moderation.risk_classifier import classify


def verified_input(content="hello", **overrides):
    fields = dict(
        message_content=content,
        user_account_age_days=100,
        server_join_age_minutes=999,
        captcha_verified=True,
    )
    fields.update(overrides)
    return ModerationInput(**fields)


def test_brand_new_unverified_account_gets_captcha():
    result = classify(ModerationInput(message_content="hello", user_account_age_days=0))

    assert result.risk_score == 50
    assert result.risk_level is RiskLevel.SUSPICIOUS
    assert result.detected_categories == (ViolationCategory.NEW_USER_UNVERIFIED,)
    assert result.recommended_action is ActionType.CAPTCHA
    assert result.reasoning == CAPTCHA_REASONING


def test_clean_message_from_established_user_is_allowed():
    result = classify(verified_input("hi everyone"))

    assert result.risk_score == 0
    assert result.risk_level is RiskLevel.SAFE
    assert result.detected_categories == ()
    assert result.recommended_action is ActionType.ALLOW
    assert result.reasoning == "Risk assessment: 0/100 (SAFE). No violations detected. Message appears safe."


def test_scam_phrase_with_link_is_warned():
    result = classify(verified_input("check dm for the details", links_present=True))

    assert result.risk_score == 35
    assert result.risk_level is RiskLevel.SUSPICIOUS
    assert result.detected_categories == (ViolationCategory.SCAM, ViolationCategory.CONTAINS_LINKS)
    assert result.recommended_action is ActionType.WARN


def test_one_prior_warning_escalates_to_delete():
    result = classify(verified_input("check dm for the details", links_present=True, previous_warnings_count=1))

    assert result.risk_score == 45
    assert result.risk_level is RiskLevel.SUSPICIOUS
    assert ViolationCategory.REPEAT_OFFENDER in result.detected_categories
    assert result.recommended_action is ActionType.DELETE
    assert "User has 1 previous warning(s)." in result.reasoning


def test_severe_repeat_offender_is_kicked_with_clamped_score():
    result = classify(
        verified_input("you idiot, kys, dm me", user_account_age_days=0, previous_warnings_count=2)
    )

    assert result.risk_score == 100
    assert result.risk_level is RiskLevel.DANGEROUS
    assert result.recommended_action is ActionType.KICK
    assert result.detected_categories == (
        ViolationCategory.SCAM,
        ViolationCategory.HARASSMENT,
        ViolationCategory.VERY_NEW_ACCOUNT,
        ViolationCategory.REPEAT_OFFENDER,
    )
    assert result.reasoning.endswith("High confidence violation detected. Immediate action required to protect community.")


@pytest.mark.parametrize(
    "overrides",
    [
        {"user_account_age_days": 6},
        {"server_join_age_minutes": 9},
        {"previous_warnings_count": 1},
    ],
)
def test_captcha_gate_triggers_for_each_condition(overrides):
    moderation_input = verified_input(captcha_verified=False, **overrides)
    assert risk_classifier.requires_captcha(moderation_input)
    assert classify(moderation_input).recommended_action is ActionType.CAPTCHA


def test_captcha_gate_boundaries_do_not_trigger():
    moderation_input = verified_input(captcha_verified=False, user_account_age_days=7, server_join_age_minutes=10)
    assert not risk_classifier.requires_captcha(moderation_input)


def test_captcha_gate_dominates_dangerous_content():
    result = classify(
        ModerationInput(
            message_content="FREE NITRO @everyone bit.ly/x you idiot kys",
            user_account_age_days=0,
            server_join_age_minutes=0,
            previous_warnings_count=5,
        )
    )
    assert result.recommended_action is ActionType.CAPTCHA
    assert result.risk_score == 50


def test_spam_family_counts_techniques_not_occurrences():
    analysis = risk_classifier.analyze_content("buy buy buy @everyone @here")
    assert analysis.score == 30
    assert analysis.categories == [ViolationCategory.SPAM]


def test_repeated_character_run_is_case_sensitive():
    assert risk_classifier.analyze_content("a" * 11).score == 15
    assert risk_classifier.analyze_content("aA" * 6).score == 0


def test_insult_glued_to_accented_letter_still_counts():
    result = classify(verified_input("éidiot"))

    assert result.risk_score == 20
    assert result.detected_categories == (ViolationCategory.HARASSMENT,)


def test_excessive_length_and_caps():
    long_text = "x" * 1501
    assert ViolationCategory.EXCESSIVE_LENGTH in risk_classifier.analyze_content(long_text).categories

    shouting = risk_classifier.analyze_content("THIS IS ALL SHOUTING NOW")
    assert shouting.categories == [ViolationCategory.EXCESSIVE_CAPS]
    assert shouting.score == 10


def test_short_caps_message_is_not_shouting():
    assert risk_classifier.analyze_content("HELLO THERE").score == 0


def test_behavior_repetition_and_volume():
    history = ["Same thing", "same THING", "same thing", "other", "more"]
    analysis = risk_classifier.analyze_behavior(history, "same thing")
    assert analysis.categories == [ViolationCategory.REPETITIVE_MESSAGING, ViolationCategory.RAPID_MESSAGING]
    assert analysis.score == 35


def test_behavior_needs_three_history_entries():
    assert risk_classifier.analyze_behavior(["hi", "hi"], "hi").score == 0


@pytest.mark.parametrize(
    "account_days, join_minutes, expected",
    [
        (0, 999, 20),
        (3, 999, 10),
        (7, 999, 0),
        (100, 4, 15),
        (100, 29, 8),
        (100, 30, 0),
        (0, 0, 35),
    ],
)
def test_account_analysis(account_days, join_minutes, expected):
    assert risk_classifier.analyze_account(account_days, join_minutes).score == expected


def test_attachment_analysis():
    assert risk_classifier.analyze_attachments(False, True, False).score == 10
    assert risk_classifier.analyze_attachments(True, False, True).score == 5
    assert risk_classifier.analyze_attachments(False, False, True).categories == [ViolationCategory.HAS_ATTACHMENTS]


@pytest.mark.parametrize("warnings, expected", [(0, 0), (1, 10), (2, 20), (3, 25), (10, 25)])
def test_repeat_offender_is_capped(warnings, expected):
    assert risk_classifier.analyze_history(warnings).score == expected


@pytest.mark.parametrize(
    "score, level",
    [(0, RiskLevel.SAFE), (30, RiskLevel.SAFE), (31, RiskLevel.SUSPICIOUS), (65, RiskLevel.SUSPICIOUS), (66, RiskLevel.DANGEROUS), (100, RiskLevel.DANGEROUS)],
)
def test_risk_level_breakpoints(score, level):
    assert risk_classifier.determine_risk_level(score) is level


def test_risk_level_is_monotonic_in_score():
    levels = [risk_classifier.determine_risk_level(score) for score in range(0, 101)]
    assert all(earlier <= later for earlier, later in zip(levels, levels[1:]))


def test_clamp_score():
    assert risk_classifier.clamp_score(-5) == 0
    assert risk_classifier.clamp_score(150) == 100
    assert risk_classifier.clamp_score(42) == 42


def test_classification_is_deterministic():
    moderation_input = verified_input(
        "FREE prize @here bit.ly/abc",
        message_history=("a", "b", "c", "d", "e"),
        links_present=True,
        previous_warnings_count=1,
    )
    assert classify(moderation_input) == classify(moderation_input)


def test_empty_content_is_an_ordinary_input():
    result = classify(verified_input(""))
    assert result.risk_score == 0
    assert result.recommended_action is ActionType.ALLOW


def test_score_stays_in_range_for_worst_case():
    result = classify(
        verified_input(
            "FREE NITRO!!!!!!!!!!!! @everyone CLICK HERE bit.ly verify account KYS IDIOT " * 30,
            message_history=("x",) * 10,
            user_account_age_days=0,
            server_join_age_minutes=0,
            attachments_present=True,
            links_present=True,
            previous_warnings_count=9,
        )
    )
    assert 0 <= result.risk_score <= 100
    assert result.risk_level is RiskLevel.DANGEROUS
