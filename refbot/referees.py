"""Operations on the referee side of a dispute: the private referee threads,
   conflicted referees, decision channels, and talking to the player.
"""

import logging
import re
from typing import Iterable, Optional

import discord

from refbot.config import cfg
from refbot.extract import slug
from refbot import templates


logger = logging.getLogger(__name__)

ONE_WEEK_MINUTES = 10080
PREFERRED_DECISION_CHANNEL = re.compile(r"^(post|result)")


async def resolve_channel(guild, channel_id: int):
    """Returns the guild channel or thread by its ID, from the cache if
       possible. Returns None if it doesn't exist (anymore).
    """
    channel = guild.get_channel_or_thread(channel_id)
    if channel is not None:
        return channel
    try:
        return await guild.fetch_channel(channel_id)
    except (discord.NotFound, discord.Forbidden):
        return None


async def create_ref_thread(guild, message, countries: list[str]):
    """Creates the private referee thread for a dispute raised by message,
       and posts the seed message in it.
    """
    ref_hub = await resolve_channel(guild, cfg("REFBOT_REF_HUB_CHANNEL_ID"))
    if not isinstance(ref_hub, discord.TextChannel):
        raise RuntimeError("Referee hub channel is not a text channel: "
                           f"{cfg('REFBOT_REF_HUB_CHANNEL_ID')}")

    player_name = message.author.display_name
    thread = await ref_hub.create_thread(
        name=templates.ref_thread_name(player_name, countries),
        auto_archive_duration=ONE_WEEK_MINUTES,
        type=discord.ChannelType.private_thread,
        invitable=False,
    )
    logger.info("Created referee thread %s (%s) for %s", thread.name,
                thread.id, message.author)

    await thread.send(templates.ref_seed_post(
        cfg("REFBOT_REF_ROLE_ID"), cfg("REFBOT_JR_REF_ROLE_ID"),
        player_name, countries, message.jump_url))

    # The author may not be allowed to see the thread, depending on the
    # hub channel's permissions, so this is best effort.
    try:
        await thread.add_user(message.author)
    except discord.HTTPException as err:
        logger.debug("Could not add %s to %s: %s", message.author,
                     thread.id, err)
    return thread


def find_decision_channel(guild, country_a: Optional[str],
                          country_b: Optional[str]):
    """Finds the text channel where rulings between these two countries
       are posted, by looking for both country slugs in the channel name.
       Channels starting with "post" or "result" win over the others.
    """
    if not country_a or not country_b:
        return None
    slug_a = slug(country_a)
    slug_b = slug(country_b)
    candidates = [c for c in guild.text_channels
                  if slug_a in c.name and slug_b in c.name]
    for channel in candidates:
        if PREFERRED_DECISION_CHANNEL.match(channel.name):
            return channel
    return candidates[0] if candidates else None


def is_referee(member) -> bool:
    ref_roles = (cfg("REFBOT_REF_ROLE_ID"), cfg("REFBOT_JR_REF_ROLE_ID"))
    return any(role.id in ref_roles for role in member.roles)


async def remove_conflicted_refs(thread, guild,
                                 countries: Iterable[str]) -> list:
    """Removes referees holding the country role of any of the disputing
       countries from the referee thread. Returns the removed members.
    """
    countries = list(countries)
    if not countries:
        return []
    prefix = cfg("REFBOT_COUNTRY_ROLE_PREFIX")
    country_role_names = {prefix + c for c in countries}
    conflicted_role_ids = {role.id for role in guild.roles
                           if role.name in country_role_names}
    if not conflicted_role_ids:
        return []

    removed = []
    for member in guild.members:
        if not is_referee(member):
            continue
        if not any(role.id in conflicted_role_ids for role in member.roles):
            continue
        try:
            await thread.remove_user(member)
            removed.append(member)
        except discord.HTTPException as err:
            logger.debug("Could not remove %s from %s: %s", member,
                         thread.id, err)

    logger.info("Removed %d conflicted referee(s) from %s", len(removed),
                thread.id)
    await thread.send(templates.conflict_notice(countries))
    return removed


async def notify_player(message, ref_thread) -> bool:
    """DMs the player that the dispute was forwarded to the referees.
       If the DM fails, replies publicly to the dispute message instead.
       Returns whether the DM went through.
    """
    try:
        await message.author.send(templates.player_notice(ref_thread.name))
        return True
    except discord.HTTPException as err:
        logger.info("Could not DM %s (%s), replying publicly",
                    message.author, err)
    await message.reply(templates.player_notice_fallback(message.author.id),
                        mention_author=False)
    return False


async def forward_to_thread(thread, text: str, attachments=()) -> None:
    """Posts the text to the thread, re-uploading any attachments."""
    files = [await attachment.to_file() for attachment in attachments]
    await thread.send(templates.clip_message(text), files=files or None)
