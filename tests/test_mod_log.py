"""Tests for moderation-log lookup and kick entries."""

from datetime import datetime, timezone

import pytest

from modsentry.moderation import mod_log


def test_find_log_channel_uses_name_priority(fake_session):
    audit, logs = object(), object()
    fake_session.channels = {"logs": logs, "audit-log": audit}

    assert mod_log.find_log_channel(fake_session, guild=None) is audit


def test_find_log_channel_with_custom_names(fake_session):
    staff = object()
    fake_session.channels = {"staff-log": staff, "mod-log": object()}

    assert mod_log.find_log_channel(fake_session, None, ("staff-log",)) is staff
    assert mod_log.find_log_channel(fake_session, None, ("nothing",)) is None


def test_build_kick_entry(target):
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    entry = mod_log.build_kick_entry(target, "severe", when)

    assert entry == (
        "**[AUTO-KICK]**\n"
        "User: spammer#0001 (1111)\n"
        "Reason: severe\n"
        "Channel: general\n"
        "Time: 2024-01-02T03:04:05+00:00"
    )


@pytest.mark.asyncio
async def test_post_kick_entry_without_channel(fake_session, target):
    assert await mod_log.post_kick_entry(fake_session, target, "severe") is False
    assert fake_session.calls == []


@pytest.mark.asyncio
async def test_post_kick_entry_swallows_errors(fake_session, target):
    def explode(guild, name):
        raise RuntimeError("cache not ready")

    fake_session.find_channel_by_name = explode

    assert await mod_log.post_kick_entry(fake_session, target, "severe") is False


@pytest.mark.asyncio
async def test_post_kick_entry_posts(fake_session, target):
    channel = object()
    fake_session.channels["modlog"] = channel

    assert await mod_log.post_kick_entry(fake_session, target, "severe") is True
    assert fake_session.calls[0][1] is channel
