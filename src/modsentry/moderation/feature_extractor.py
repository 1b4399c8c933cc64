"""
Turns a live message plus persisted context into a `ModerationInput`.

Everything here is synchronous and side-effect free; the pipeline does the
database reads and passes the results in.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from modsentry.datatypes.moderation_datatypes import UNKNOWN_JOIN_AGE_MINUTES, ModerationInput

URL_PATTERN = re.compile(
    r"(https?://\S+)|(www\.\S+)|(\b[a-z0-9-]+\.(com|net|org|io|gg|xyz|co|me|tv|bot)\b)",
    re.IGNORECASE,
)

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "webp", "bmp"})


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calculate_account_age(created_at: datetime, now: datetime | None = None) -> int:
    """Whole days since ``created_at`` (floored)."""
    now = _utc(now or datetime.now(timezone.utc))
    return int((now - _utc(created_at)).total_seconds() // 86400)


def calculate_join_age(joined_at: datetime | None, now: datetime | None = None) -> int:
    """Whole minutes since ``joined_at`` (floored); the unknown sentinel when missing."""
    if joined_at is None:
        return UNKNOWN_JOIN_AGE_MINUTES
    now = _utc(now or datetime.now(timezone.utc))
    return int((now - _utc(joined_at)).total_seconds() // 60)


def detect_links(content: str) -> bool:
    return URL_PATTERN.search(content or "") is not None


def detect_images(attachments: Iterable[Any]) -> bool:
    """True when any attachment's filename ends in a known image extension."""
    for attachment in attachments:
        filename = getattr(attachment, "filename", None) or ""
        extension = filename.rsplit(".", 1)[-1].lower()
        if extension in IMAGE_EXTENSIONS:
            return True
    return False


def summarize_history(message_lengths: Sequence[int]) -> list[str]:
    """Stored history carries no text, so each earlier message becomes ``"[<length> chars]"``."""
    return [f"[{length} chars]" for length in message_lengths]


def build_moderation_input(
    content: str,
    history: Sequence[str],
    account_created_at: datetime,
    joined_at: datetime | None,
    attachments: Sequence[Any],
    warning_count: int,
    captcha_verified: bool,
    now: datetime | None = None,
) -> ModerationInput:
    return ModerationInput(
        message_content=content,
        message_history=tuple(history),
        user_account_age_days=calculate_account_age(account_created_at, now),
        server_join_age_minutes=calculate_join_age(joined_at, now),
        attachments_present=len(attachments) > 0,
        links_present=detect_links(content),
        image_uploaded=detect_images(attachments),
        previous_warnings_count=warning_count,
        captcha_verified=captcha_verified,
    )
