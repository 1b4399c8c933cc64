"""
Pytest configuration and fixtures for ModSentry tests.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from modsentry.moderation.session import ModerationTarget, OperationResult  # noqa: E402


class FakeSession:
    """In-memory `ModerationSession` that records every call in order."""

    def __init__(self):
        self.calls = []
        self.can_delete = True
        self.can_moderate = True
        self.can_kick = True
        self.delete_result = OperationResult.success()
        self.timeout_result = OperationResult.success()
        self.kick_result = OperationResult.success()
        self.private_result = OperationResult.success()
        self.notice_fails = False
        self.timeout_error = None
        self.channels = {}
        self.posted = []
        self.deleted_notices = []

    def deletable(self, message):
        return self.can_delete

    async def delete(self, message):
        self.calls.append(("delete", message))
        return self.delete_result

    async def post_notice(self, channel, text):
        self.calls.append(("post_notice", channel, text))
        if self.notice_fails:
            return None
        notice = MagicMock(name=f"notice-{len(self.posted)}")
        self.posted.append((channel, text, notice))
        return notice

    async def delete_notice(self, notice):
        self.calls.append(("delete_notice", notice))
        self.deleted_notices.append(notice)
        return OperationResult.success()

    def moderatable(self, member):
        return self.can_moderate

    async def timeout(self, member, duration_seconds, reason):
        self.calls.append(("timeout", member, duration_seconds, reason))
        if self.timeout_error is not None:
            raise self.timeout_error
        return self.timeout_result

    def kickable(self, member):
        return self.can_kick

    async def kick(self, member, reason):
        self.calls.append(("kick", member, reason))
        return self.kick_result

    async def send_private(self, user, text):
        self.calls.append(("send_private", user, text))
        return self.private_result

    def find_channel_by_name(self, guild, name):
        return self.channels.get(name)

    def call_names(self):
        return [call[0] for call in self.calls]


class ManualScheduler:
    """Deferred-task scheduler driven by the test instead of a clock."""

    def __init__(self):
        self.jobs = []
        self.now = 0.0

    def schedule_after(self, delay_seconds, task):
        self.jobs.append((self.now + delay_seconds, task))

    async def advance(self, seconds):
        """Move the clock forward and run every job that became due."""
        self.now += seconds
        due = [job for job in self.jobs if job[0] <= self.now]
        self.jobs = [job for job in self.jobs if job[0] > self.now]
        for _, task in sorted(due, key=lambda job: job[0]):
            await task()


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def target():
    author = MagicMock(name="author")
    author.id = 1111
    author.mention = "<@1111>"
    author.__str__.return_value = "spammer#0001"
    guild = MagicMock(name="guild")
    guild.id = 2222
    guild.name = "Test Guild"
    channel = MagicMock(name="channel")
    channel.id = 3333
    channel.name = "general"
    message = MagicMock(name="message")
    message.id = 4444
    return ModerationTarget(message=message, author=author, member=author, channel=channel, guild=guild)
