"""
Content rule tables.

Each family maps one violation category to a per-technique weight and an
ordered tuple of named predicates over the message text. A family scores
``weight * number of distinct predicates that match``; how often a single
predicate matches does not matter.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from modsentry.datatypes.moderation_datatypes import ViolationCategory


@dataclass(frozen=True, slots=True)
class PatternRule:
    """A single named detection technique."""

    name: str
    pattern: re.Pattern[str]

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True, slots=True)
class RuleFamily:
    """A group of techniques that share one category and one weight."""

    category: ViolationCategory
    weight: int
    rules: Tuple[PatternRule, ...]

    def matched_rules(self, text: str) -> list[str]:
        """Names of the techniques in this family that match ``text``."""
        return [rule.name for rule in self.rules if rule.matches(text)]

    def score(self, text: str) -> int:
        return self.weight * len(self.matched_rules(text))


def _rule(name: str, expression: str, flags: int = re.IGNORECASE | re.ASCII) -> PatternRule:
    return PatternRule(name=name, pattern=re.compile(expression, flags))


SPAM_RULES = RuleFamily(
    category=ViolationCategory.SPAM,
    weight=15,
    rules=(
        # Case matters here: "aaaaaaaaaaa" is a run, "aAaAaA..." is not
        _rule("repeated_character_run", r"(.)\1{10,}", flags=re.ASCII),
        _rule("mass_mention", r"@everyone|@here"),
        _rule("promotional_vocabulary", r"\b(buy|shop|discount|free|prize|winner|click here|limited time)\b"),
    ),
)

SCAM_RULES = RuleFamily(
    category=ViolationCategory.SCAM,
    weight=25,
    rules=(
        _rule("fake_gift", r"\b(free nitro|discord nitro|steam gift|gift card|prize)\b"),
        _rule("social_engineering", r"\b(verify account|click link|dm me|check dm)\b"),
        _rule("link_shortener", r"bit\.ly|tinyurl|shorturl"),
    ),
)

HARASSMENT_RULES = RuleFamily(
    category=ViolationCategory.HARASSMENT,
    weight=20,
    rules=(
        _rule("self_harm_incitement", r"\b(kill yourself|kys|die|h8|fck|btch)\b"),
        _rule("insult", r"\b(idiot|stupid|dumb|loser|trash)\b"),
    ),
)

# Evaluation order decides the order categories are reported in
CONTENT_RULE_FAMILIES: Tuple[RuleFamily, ...] = (SPAM_RULES, SCAM_RULES, HARASSMENT_RULES)
