import discord
import pendulum
import pytest

from refbot.disputes import Dispute, DisputeRegistry


DISPUTE_CHANNEL_ID = 100
REF_HUB_CHANNEL_ID = 200
REF_ROLE_ID = 300
JR_REF_ROLE_ID = 301
TRIGGER_ROLE_ID = 302


class AsyncIter:
    """Stand-in for the async iterators returned by e.g. history()."""
    def __init__(self, items):
        self.items = list(items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.items:
            raise StopAsyncIteration
        return self.items.pop(0)


@pytest.fixture
def refbot_env(monkeypatch):
    """Config values the tests rely on, overriding cfg/config.yml."""
    monkeypatch.setenv("REFBOT_DISPUTE_CHANNEL_ID", str(DISPUTE_CHANNEL_ID))
    monkeypatch.setenv("REFBOT_REF_HUB_CHANNEL_ID", str(REF_HUB_CHANNEL_ID))
    monkeypatch.setenv("REFBOT_REF_ROLE_ID", str(REF_ROLE_ID))
    monkeypatch.setenv("REFBOT_JR_REF_ROLE_ID", str(JR_REF_ROLE_ID))
    monkeypatch.setenv("REFBOT_TRIGGER_ROLE_ID", str(TRIGGER_ROLE_ID))


@pytest.fixture
def registry():
    return DisputeRegistry()


@pytest.fixture
def make_role(mocker):
    def _make_role(role_id, name):
        role = mocker.MagicMock()
        role.id = role_id
        role.name = name
        return role
    return _make_role


@pytest.fixture
def make_user(mocker):
    def _make_user(user_id, name, roles=()):
        user = mocker.MagicMock()
        user.id = user_id
        user.name = name
        user.display_name = name.title()
        user.mention = f"<@{user_id}>"
        user.bot = False
        user.roles = list(roles)
        user.send = mocker.AsyncMock()
        return user
    return _make_user


@pytest.fixture
def make_thread(mocker):
    def _make_thread(thread_id, name="thread", parent_id=None, parent=None):
        thread = mocker.MagicMock(spec=discord.Thread)
        thread.id = thread_id
        thread.name = name
        thread.parent_id = parent_id
        thread.parent = parent
        thread.mention = f"<#{thread_id}>"
        thread.send = mocker.AsyncMock()
        thread.add_user = mocker.AsyncMock()
        thread.remove_user = mocker.AsyncMock()
        thread.edit = mocker.AsyncMock()
        return thread
    return _make_thread


@pytest.fixture
def make_text_channel(mocker):
    def _make_text_channel(channel_id, name="general"):
        channel = mocker.MagicMock(spec=discord.TextChannel)
        channel.id = channel_id
        channel.name = name
        channel.send = mocker.AsyncMock()
        channel.create_thread = mocker.AsyncMock()
        return channel
    return _make_text_channel


@pytest.fixture
def make_guild(mocker):
    def _make_guild(channels=(), roles=(), members=()):
        guild = mocker.MagicMock()
        guild.id = 1
        lookup = {channel.id: channel for channel in channels}
        guild.get_channel_or_thread.side_effect = lookup.get
        guild.fetch_channel = mocker.AsyncMock(
            side_effect=discord.NotFound(mocker.MagicMock(status=404),
                                         "Unknown Channel"))
        guild.text_channels = [c for c in channels
                               if isinstance(c, discord.TextChannel)]
        guild.roles = list(roles)
        guild.members = list(members)
        return guild
    return _make_guild


@pytest.fixture
def make_message(mocker):
    def _make_message(author, channel, guild, content="",
                      role_mentions=(), mentions=(), attachments=()):
        msg = mocker.MagicMock()
        msg.id = 9000
        msg.author = author
        msg.channel = channel
        msg.guild = guild
        msg.content = content
        msg.role_mentions = list(role_mentions)
        msg.mentions = list(mentions)
        msg.attachments = list(attachments)
        msg.jump_url = f"https://discord.com/channels/1/{channel.id}/9000"
        msg.reply = mocker.AsyncMock()
        return msg
    return _make_message


@pytest.fixture
def make_dispute():
    def _make_dispute(ref_thread_id, player1_id=1, dispute_thread_id=None,
                      **kwargs):
        kwargs.setdefault("opened_at", pendulum.now())
        return Dispute(ref_thread_id=ref_thread_id,
                       dispute_thread_id=dispute_thread_id,
                       player1_id=player1_id, **kwargs)
    return _make_dispute
