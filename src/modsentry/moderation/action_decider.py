"""Escalation ladder that turns a score into a recommended action.

The thresholds are moderation policy:

============  ====================================  =========
Level         Condition                             Action
============  ====================================  =========
SAFE          any                                   ALLOW
SUSPICIOUS    0 warnings                            WARN
SUSPICIOUS    1 warning                             DELETE
SUSPICIOUS    2+ warnings                           MUTE
DANGEROUS     score >= 85 and 2+ warnings           KICK
DANGEROUS     score >= 70                           MUTE
DANGEROUS     otherwise                             DELETE
============  ====================================  =========
"""

from modsentry.datatypes.moderation_datatypes import ActionType, RiskLevel

KICK_SCORE_THRESHOLD = 85
MUTE_SCORE_THRESHOLD = 70
KICK_WARNING_THRESHOLD = 2


def decide(score: int, level: RiskLevel, warning_count: int) -> ActionType:
    """Return the recommended action for a classified message."""
    match level:
        case RiskLevel.SAFE:
            return ActionType.ALLOW
        case RiskLevel.SUSPICIOUS:
            if warning_count <= 0:
                return ActionType.WARN
            if warning_count == 1:
                return ActionType.DELETE
            return ActionType.MUTE
        case RiskLevel.DANGEROUS:
            if score >= KICK_SCORE_THRESHOLD and warning_count >= KICK_WARNING_THRESHOLD:
                return ActionType.KICK
            if score >= MUTE_SCORE_THRESHOLD:
                return ActionType.MUTE
            return ActionType.DELETE
    raise ValueError(f"Unknown risk level: {level!r}")
