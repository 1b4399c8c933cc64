from modsentry.datatypes.moderation_datatypes import ActionType, RiskLevel

PERMANENT_DURATION = "Till the end of time"

RISK_EMOJI = {
    RiskLevel.SAFE: "✅",
    RiskLevel.SUSPICIOUS: "⚠️",
    RiskLevel.DANGEROUS: "🚨",
}

ACTION_EMOJI = {
    ActionType.ALLOW: "✅",
    ActionType.WARN: "⚠️",
    ActionType.DELETE: "🗑️",
    ActionType.MUTE: "🔇",
    ActionType.KICK: "🚫",
    ActionType.CAPTCHA: "🔐",
}

UNKNOWN_EMOJI = "❓"


def format_duration(seconds: int) -> str:
    """
    Convert a duration in seconds to a human-readable string.

    Args:
        seconds (int): Duration in seconds.

    Returns:
        str: Human-readable duration string.
    """
    if seconds == 0:
        return PERMANENT_DURATION
    elif seconds < 60:
        return f"{seconds} secs"
    elif seconds < 3600:
        mins = seconds // 60
        return f"{mins} minute{'s' if mins != 1 else ''}"
    elif seconds < 86400:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    else:
        days = seconds // 86400
        return f"{days} day{'s' if days != 1 else ''}"


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - 3)] + "..."


def risk_emoji(level: RiskLevel | str) -> str:
    try:
        return RISK_EMOJI.get(RiskLevel(str(level)), UNKNOWN_EMOJI)
    except ValueError:
        return UNKNOWN_EMOJI


def action_emoji(action: ActionType | str) -> str:
    try:
        return ACTION_EMOJI.get(ActionType(str(action)), UNKNOWN_EMOJI)
    except ValueError:
        return UNKNOWN_EMOJI
