"""Human-readable explanations attached to classification results."""

from typing import Iterable

from modsentry.datatypes.moderation_datatypes import RiskLevel, ViolationCategory

CAPTCHA_REASONING = (
    "New or flagged user has not completed CAPTCHA verification. "
    "Temporarily restricting messaging until verification is complete."
)

_CLOSING_SENTENCES = {
    RiskLevel.SUSPICIOUS: "Monitoring user activity. Warning issued for borderline content.",
    RiskLevel.DANGEROUS: "High confidence violation detected. Immediate action required to protect community.",
}


def explain(
    score: int,
    level: RiskLevel,
    categories: Iterable[ViolationCategory],
    warning_count: int,
) -> str:
    """Render the human-readable explanation attached to a result.

    Deterministic: the same arguments always give the same text.
    """
    category_names = [str(category) for category in categories]
    reasoning = f"Risk assessment: {score}/100 ({level}). "

    if not category_names:
        return reasoning + "No violations detected. Message appears safe."

    reasoning += f"Detected: {', '.join(category_names)}. "

    if warning_count > 0:
        reasoning += f"User has {warning_count} previous warning(s). "

    reasoning += _CLOSING_SENTENCES.get(level, "")
    return reasoning.rstrip()
