"""Degradation ladder for privileged actions.

When the bot may not carry out a membership action it falls back one rung:
KICK -> MUTE -> DELETE. Everything else is terminal.
"""

from __future__ import annotations

from typing import List

from modsentry.datatypes.moderation_datatypes import ActionType

DEGRADATION_LADDER = {
    ActionType.KICK: ActionType.MUTE,
    ActionType.MUTE: ActionType.DELETE,
}

# Longest possible walk down the ladder (KICK -> MUTE -> DELETE)
MAX_DEGRADE_STEPS = 2


def degrade(action: ActionType) -> ActionType | None:
    """Return the next weaker action, or None if ``action`` cannot degrade."""
    return DEGRADATION_LADDER.get(action)


def degradation_path(action: ActionType) -> List[ActionType]:
    """Every action reachable from ``action``, starting with ``action`` itself."""
    path = [action]
    for _ in range(MAX_DEGRADE_STEPS):
        next_action = degrade(path[-1])
        if next_action is None:
            break
        path.append(next_action)
    return path
