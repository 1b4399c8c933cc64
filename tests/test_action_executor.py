"""Tests for ActionExecutor: handlers, degradation and notice expiry."""

from unittest.mock import AsyncMock, patch

import pytest

from modsentry.configuration.moderation_settings import ModerationSettings
from modsentry.datatypes.moderation_datatypes import ActionType
from modsentry.moderation.action_executor import ActionExecutor
from modsentry.moderation.session import OperationResult


@pytest.fixture
def executor(fake_session, manual_scheduler):
    return ActionExecutor(fake_session, manual_scheduler, ModerationSettings())


@pytest.mark.asyncio
async def test_allow_does_nothing(executor, fake_session, target):
    assert await executor.execute(ActionType.ALLOW, target, "fine") is ActionType.ALLOW
    assert fake_session.calls == []


@pytest.mark.asyncio
async def test_warn_posts_notice_only(executor, fake_session, target):
    outcome = await executor.execute(ActionType.WARN, target, "borderline")

    assert outcome is ActionType.WARN
    assert fake_session.call_names() == ["post_notice"]
    _, channel, text = fake_session.calls[0]
    assert channel is target.channel
    assert "**Reason:** borderline" in text
    assert target.author.mention in text


@pytest.mark.asyncio
async def test_delete_removes_message_before_notice_then_dms(executor, fake_session, target):
    outcome = await executor.execute(ActionType.DELETE, target, "spam")

    assert outcome is ActionType.DELETE
    assert fake_session.call_names() == ["delete", "post_notice", "send_private"]
    assert "Test Guild" in fake_session.calls[2][2]


@pytest.mark.asyncio
async def test_mute_times_out_member(executor, fake_session, target):
    outcome = await executor.execute(ActionType.MUTE, target, "abuse")

    assert outcome is ActionType.MUTE
    assert fake_session.call_names() == ["delete", "timeout", "post_notice", "send_private"]
    _, member, duration, reason = fake_session.calls[1]
    assert member is target.member
    assert duration == 600
    assert reason == "Moderation system: abuse"
    assert "10 minutes" in fake_session.calls[2][2]


@pytest.mark.asyncio
async def test_mute_of_unmoderatable_member_degrades_to_delete(executor, fake_session, target):
    fake_session.can_moderate = False

    outcome = await executor.execute(ActionType.MUTE, target, "abuse")

    assert outcome is ActionType.DELETE
    assert fake_session.call_names() == ["delete", "post_notice", "send_private"]
    assert "was removed" in fake_session.calls[1][2]


@pytest.mark.asyncio
async def test_failed_timeout_degrades_to_delete(executor, fake_session, target):
    fake_session.timeout_result = OperationResult.failure("forbidden")

    assert await executor.execute(ActionType.MUTE, target, "abuse") is ActionType.DELETE
    assert fake_session.call_names().count("delete") == 1


@pytest.mark.asyncio
async def test_raising_timeout_degrades_to_delete(executor, fake_session, target):
    fake_session.timeout_error = RuntimeError("gateway hiccup")

    assert await executor.execute(ActionType.MUTE, target, "abuse") is ActionType.DELETE


@pytest.mark.asyncio
async def test_captcha_timeout_error_still_reports_captcha(executor, fake_session, target):
    fake_session.timeout_error = RuntimeError("gateway hiccup")

    assert await executor.execute(ActionType.CAPTCHA, target, "unverified") is ActionType.CAPTCHA
    assert fake_session.call_names() == ["delete", "post_notice", "timeout"]


@pytest.mark.asyncio
async def test_mute_without_member_degrades(executor, fake_session, target):
    target.member = None

    assert await executor.execute(ActionType.MUTE, target, "abuse") is ActionType.DELETE
    assert "timeout" not in fake_session.call_names()


@pytest.mark.asyncio
async def test_kick_dms_before_removal_and_logs(executor, fake_session, target):
    log_channel = object()
    fake_session.channels["mod-log"] = log_channel

    outcome = await executor.execute(ActionType.KICK, target, "severe")

    assert outcome is ActionType.KICK
    assert fake_session.call_names() == ["delete", "send_private", "kick", "post_notice", "post_notice"]
    assert fake_session.calls[2][2] == "Moderation system: severe"
    log_call = fake_session.calls[4]
    assert log_call[1] is log_channel
    assert log_call[2].startswith("**[AUTO-KICK]**")


@pytest.mark.asyncio
async def test_unkickable_member_degrades_to_mute(executor, fake_session, target):
    fake_session.can_kick = False

    outcome = await executor.execute(ActionType.KICK, target, "severe")

    assert outcome is ActionType.MUTE
    assert "kick" not in fake_session.call_names()
    assert fake_session.call_names().count("delete") == 1


@pytest.mark.asyncio
async def test_kick_degrades_all_the_way_to_delete(executor, fake_session, target):
    fake_session.can_kick = False
    fake_session.can_moderate = False

    assert await executor.execute(ActionType.KICK, target, "severe") is ActionType.DELETE
    assert fake_session.call_names() == ["delete", "post_notice", "send_private"]


@pytest.mark.asyncio
async def test_failed_kick_degrades(executor, fake_session, target):
    fake_session.kick_result = OperationResult.failure("missing permissions")

    assert await executor.execute(ActionType.KICK, target, "severe") is ActionType.MUTE


@pytest.mark.asyncio
async def test_raising_kick_degrades_to_mute(executor, fake_session, target):
    fake_session.kick = AsyncMock(side_effect=RuntimeError("gateway down"))

    assert await executor.execute(ActionType.KICK, target, "severe") is ActionType.MUTE
    fake_session.kick.assert_awaited_once()
    assert fake_session.call_names() == ["delete", "send_private", "timeout", "post_notice", "send_private"]


@pytest.mark.asyncio
async def test_private_message_failure_does_not_change_outcome(executor, fake_session, target):
    fake_session.private_result = OperationResult.failure("direct messages disabled")

    assert await executor.execute(ActionType.DELETE, target, "spam") is ActionType.DELETE
    assert await executor.execute(ActionType.KICK, target, "severe") is ActionType.KICK


@pytest.mark.asyncio
async def test_missing_log_channel_does_not_change_outcome(executor, fake_session, target):
    assert await executor.execute(ActionType.KICK, target, "severe") is ActionType.KICK


@pytest.mark.asyncio
async def test_captcha_deletes_notifies_and_times_out(executor, fake_session, target):
    outcome = await executor.execute(ActionType.CAPTCHA, target, "unverified")

    assert outcome is ActionType.CAPTCHA
    assert fake_session.call_names() == ["delete", "post_notice", "timeout"]
    assert "/verify" in fake_session.calls[1][2]
    assert fake_session.calls[2][2] == 300


@pytest.mark.asyncio
async def test_captcha_skips_timeout_when_not_moderatable(executor, fake_session, target):
    fake_session.can_moderate = False

    assert await executor.execute(ActionType.CAPTCHA, target, "unverified") is ActionType.CAPTCHA
    assert "timeout" not in fake_session.call_names()


@pytest.mark.asyncio
async def test_undeletable_message_is_left_alone(executor, fake_session, target):
    fake_session.can_delete = False

    assert await executor.execute(ActionType.DELETE, target, "spam") is ActionType.DELETE
    assert "delete" not in fake_session.call_names()


@pytest.mark.asyncio
async def test_unexpected_error_reports_error(executor, target):
    with patch.object(executor, "dispatch", AsyncMock(side_effect=RuntimeError("boom"))):
        assert await executor.execute(ActionType.WARN, target, "x") is ActionType.ERROR


@pytest.mark.asyncio
async def test_error_is_not_executable(executor, target):
    assert await executor.execute(ActionType.ERROR, target, "x") is ActionType.ERROR


@pytest.mark.asyncio
async def test_notices_expire_after_their_lifetime(executor, fake_session, manual_scheduler, target):
    await executor.execute(ActionType.MUTE, target, "abuse")
    notice = fake_session.posted[0][2]

    await manual_scheduler.advance(14)
    assert fake_session.deleted_notices == []

    await manual_scheduler.advance(1)
    assert fake_session.deleted_notices == [notice]


@pytest.mark.asyncio
async def test_only_the_public_kick_notice_expires(executor, fake_session, manual_scheduler, target):
    await executor.execute(ActionType.KICK, target, "severe")

    assert [delay for delay, _ in manual_scheduler.jobs] == [20]


@pytest.mark.asyncio
async def test_failed_notice_schedules_nothing(executor, fake_session, manual_scheduler, target):
    fake_session.notice_fails = True

    assert await executor.execute(ActionType.WARN, target, "x") is ActionType.WARN
    assert manual_scheduler.jobs == []


@pytest.mark.asyncio
async def test_custom_lifetimes_and_durations(fake_session, manual_scheduler, target):
    settings = ModerationSettings({"mute_timeout_seconds": 3600, "notice_lifetimes": {"mute": 5}})
    executor = ActionExecutor(fake_session, manual_scheduler, settings)

    await executor.execute(ActionType.MUTE, target, "abuse")

    assert fake_session.calls[1][2] == 3600
    assert "1 hour" in fake_session.calls[2][2]
    assert manual_scheduler.jobs[0][0] == 5
