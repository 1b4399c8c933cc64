"""Tests for the content rule tables."""

from modsentry.datatypes.moderation_datatypes import ViolationCategory
from modsentry.moderation.rules import CONTENT_RULE_FAMILIES, HARASSMENT_RULES, SCAM_RULES, SPAM_RULES


def test_family_order_and_weights():
    assert [family.category for family in CONTENT_RULE_FAMILIES] == [
        ViolationCategory.SPAM,
        ViolationCategory.SCAM,
        ViolationCategory.HARASSMENT,
    ]
    assert [family.weight for family in CONTENT_RULE_FAMILIES] == [15, 25, 20]


def test_matched_rule_names():
    assert SCAM_RULES.matched_rules("Free Nitro here: bit.ly/abc") == ["fake_gift", "link_shortener"]
    assert HARASSMENT_RULES.matched_rules("nobody likes a loser") == ["insult"]


def test_words_must_stand_alone():
    assert SPAM_RULES.score("freedom and shopping") == 0
    assert HARASSMENT_RULES.score("diet plans") == 0


def test_prize_counts_as_spam_and_scam():
    assert SPAM_RULES.score("win a prize") == 15
    assert SCAM_RULES.score("win a prize") == 25


def test_word_boundaries_are_ascii():
    # Accented letters are not word characters, so they do not shield a match
    assert HARASSMENT_RULES.matched_rules("éidiot") == ["insult"]
    assert SPAM_RULES.matched_rules("ñfree") == ["promotional_vocabulary"]
