"""Heuristics for pulling the structured bits out of a dispute message."""

import re
from typing import Iterable, Optional, Union

import discord


# Plain-text "@handle" that wasn't turned into a real mention.
HANDLE_PATTERN = re.compile(r"@([A-Za-z0-9_\-.]{2,32})")
# Real mention tokens, "<@123>", "<@!123>", "<@&123>", stripped before
# looking for plain-text handles.
MENTION_TOKEN_PATTERN = re.compile(r"<@[!&]?\d+>")

# Checked in order; the first category with a keyword hit wins.
ISSUE_CATEGORIES = (
    ("Disconnect", ("disconnect", "dc'd", "dced", "dropped", "crash")),
    ("Lag", ("lag", "latency", "desync", "ping spike")),
    ("No-show", ("no-show", "no show", "noshow", "didn't show",
                 "did not show")),
    ("Timer", ("timer", "timed out", "timeout", "ran out of time")),
    ("Team sheet", ("team sheet", "lead", "illegal", "wrong team",
                    "changed team")),
    ("Conduct", ("toxic", "insult", "harass", "unsportsmanlike")),
)
DEFAULT_ISSUE_CATEGORY = "Other"


def slug(text: str) -> str:
    """Channel name friendly form of the text, e.g. "Côte d'Ivoire" ->
       "c-te-d-ivoire".
    """
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def mentions_role(message, role_id: int) -> bool:
    """Whether the message mentions the role, either as a resolved role
       mention or as a raw "<@&id>" token in the text.
    """
    if any(role.id == role_id for role in message.role_mentions):
        return True
    return f"<@&{role_id}>" in (message.content or "")


def in_dispute_area(channel, dispute_channel_id: int) -> bool:
    """Whether the channel is the dispute channel, or a thread / forum post
       under it.
    """
    if channel is None:
        return False
    return (channel.id == dispute_channel_id or
            getattr(channel, "parent_id", None) == dispute_channel_id)


def is_thread(channel) -> bool:
    return isinstance(channel, discord.Thread)


def extract_countries(message, prefix: str,
                      ignored_role_ids: Iterable[int] = ()) -> list[str]:
    """Returns the countries involved in a dispute, in order of discovery:
         1. tags applied to the forum post the message is in,
         2. roles mentioned in the message (except ignored_role_ids),
         3. country roles (named "<prefix><country>") whose bare country
            name appears in the message text.
    """
    ignored_role_ids = set(ignored_role_ids)
    countries: list[str] = []
    seen: set[str] = set()

    def add(name: str) -> None:
        if name.startswith(prefix):
            name = name[len(prefix):]
        name = name.strip()
        if name and name.casefold() not in seen:
            seen.add(name.casefold())
            countries.append(name)

    channel = message.channel
    if is_thread(channel) and isinstance(channel.parent, discord.ForumChannel):
        for tag in channel.applied_tags:
            add(tag.name)

    for role in message.role_mentions:
        if role.id not in ignored_role_ids:
            add(role.name)

    content = (message.content or "").lower()
    if message.guild is not None and prefix:
        for role in message.guild.roles:
            if not role.name.startswith(prefix):
                continue
            name = role.name[len(prefix):]
            if name and name.lower() in content:
                add(name)

    return countries


def extract_opponent(message) -> Union[discord.abc.User, str, None]:
    """First user mentioned that isn't the author; failing that, a plain-text
       "@handle" from the message text.
    """
    for user in message.mentions:
        if user.id != message.author.id:
            return user
    text = MENTION_TOKEN_PATTERN.sub("", message.content or "")
    match = HANDLE_PATTERN.search(text)
    return match.group(1) if match else None


def extract_issue_summary(content: str, max_length: int = 200) -> str:
    """First line of the message, as a brief overview of the issue."""
    if max_length < 2:
        raise ValueError(f"max_length must be at least 2, got {max_length}")
    first_line = (content or "").strip().split("\n")[0].strip()
    if len(first_line) > max_length:
        return first_line[:max_length - 1] + "…"
    return first_line


def classify_issue(content: str) -> str:
    """Rough issue category of the message, by keyword."""
    text = (content or "").lower()
    for category, keywords in ISSUE_CATEGORIES:
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_ISSUE_CATEGORY


def opponent_display(opponent) -> Optional[str]:
    """"@name" for a user or a plain handle, None if there's no opponent."""
    if opponent is None:
        return None
    if isinstance(opponent, str):
        return f"@{opponent}"
    return f"@{opponent.name}"
