#!/usr/bin/env python3

"""Discord bot for routing match disputes to the referee team.

   Usage:
     Run with "python -m refbot", or the "refbot" console script.
     See the refbot package docstring for the triggers and slash commands.

     Config values:
       The config values have been documented as comments in the
       cfg/config.yml file itself.
"""

# MIT License
#
# Copyright (c) 2021- https://github.com/Rainyan and collaborators
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

import dataclasses
import logging
import sys
from typing import Optional

import discord
from discord.ext import commands

from refbot import __title__, __version__
from refbot import referees
from refbot import templates
from refbot.config import cfg
from refbot.disputes import Dispute, DisputeRegistry
from refbot.extract import (classify_issue, extract_countries,
                            extract_issue_summary, extract_opponent,
                            in_dispute_area, is_thread, mentions_role,
                            opponent_display)
from refbot.log import handle_exception, setup_logging
from refbot.views import DisputePickerView


assert discord.version_info.major == 2

logger = logging.getLogger(__name__)

# Register the slash commands to the configured guild only, so that they
# show up immediately; 0 means global registration.
GUILD_IDS = [cfg("REFBOT_GUILD_ID")] if cfg("REFBOT_GUILD_ID") else None

GRANT_OPTIONS = [discord.OptionChoice(name=name, value=value)
                 for name, value in templates.GRANT_CHOICES.items()]
TEAM_RULE_OPTIONS = [discord.OptionChoice(name=name, value=value)
                     for name, value in templates.TEAM_RULE_CHOICES.items()]


class DisputeCog(commands.Cog):
    """Dispute workflow: triggers, mirroring, DM relay and the referee
       slash commands.
    """

    def __init__(self, parent_bot, registry: Optional[DisputeRegistry] = None):
        self.bot = parent_bot
        self.registry = registry if registry is not None else DisputeRegistry()

    @commands.Cog.listener()
    async def on_ready(self):
        logger.info("Logged in as %s", self.bot.user)

    @commands.Cog.listener()
    async def on_message(self, msg):
        """Routes every incoming message to the right dispute handler."""
        if msg.author.bot:
            return
        try:
            if msg.guild is None:
                await self.relay_direct_message(msg)
                return
            if not in_dispute_area(msg.channel,
                                   cfg("REFBOT_DISPUTE_CHANNEL_ID")):
                return
            if mentions_role(msg, cfg("REFBOT_TRIGGER_ROLE_ID")):
                await self.handle_dispute_trigger(msg)
            else:
                await self.mirror_player_message(msg)
        # A failing handler must not take the other disputes down with it.
        except Exception:  # pylint: disable=broad-except
            logger.exception("Message handler error for message %s", msg.id)

    async def handle_dispute_trigger(self, msg) -> Dispute:
        """A player tagged the referees in the dispute channel: ask the
           preset questions, set up (or reuse) the referee thread, and
           brief the referees.
        """
        guild = msg.guild
        dispute_thread = msg.channel if is_thread(msg.channel) else None
        dispute_thread_id = dispute_thread.id if dispute_thread else None

        if dispute_thread is not None and \
                self.registry.ref_thread_for(dispute_thread.id) is None:
            await dispute_thread.send(templates.preset_questions(
                cfg("REFBOT_REF_ROLE_ID"), cfg("REFBOT_PRESET_QUERIES")))

        countries = extract_countries(
            msg, cfg("REFBOT_COUNTRY_ROLE_PREFIX"),
            ignored_role_ids=(cfg("REFBOT_TRIGGER_ROLE_ID"),
                              cfg("REFBOT_REF_ROLE_ID"),
                              cfg("REFBOT_JR_REF_ROLE_ID")))
        opponent = extract_opponent(msg)
        summary = extract_issue_summary(msg.content,
                                        cfg("REFBOT_SUMMARY_MAX_LENGTH"))
        category = classify_issue(msg.content)

        ref_thread = None
        previous = None
        if dispute_thread_id is not None:
            existing_id = self.registry.ref_thread_for(dispute_thread_id)
            if existing_id is not None:
                previous = self.registry.get(existing_id)
                ref_thread = await referees.resolve_channel(guild, existing_id)
                if ref_thread is None:
                    logger.info("Referee thread %s is gone, recreating",
                                existing_id)
                    previous = None

        decision_channel = None
        if ref_thread is None:
            ref_thread = await referees.create_ref_thread(guild, msg,
                                                          countries)
            if dispute_thread_id is not None:
                self.registry.rebind(dispute_thread_id, ref_thread.id)
            if len(countries) >= 2:
                decision_channel = referees.find_decision_channel(
                    guild, countries[0], countries[1])
                if decision_channel is not None:
                    if dispute_thread_id is not None:
                        self.registry.set_decision_channel(
                            dispute_thread_id, decision_channel.id)
                    await ref_thread.send(templates.decision_channel_notice(
                        decision_channel.id))
            await referees.remove_conflicted_refs(ref_thread, guild,
                                                  countries)
            await referees.notify_player(msg, ref_thread)

        await ref_thread.send(templates.clip_message(
            templates.dispute_context_post(
                msg.author.id, opponent_display(opponent), countries,
                category, summary, msg.jump_url)))

        player2 = opponent.id if hasattr(opponent, "id") else opponent
        dispute = Dispute(
            ref_thread_id=ref_thread.id,
            dispute_thread_id=dispute_thread_id,
            player1_id=msg.author.id,
            player2=player2,
            issue_category=category,
            countries=tuple(countries),
            summary=summary,
            source_url=msg.jump_url,
            ref_thread_name=ref_thread.name,
            decision_channel_id=(decision_channel.id
                                 if decision_channel is not None and
                                 dispute_thread_id is None else None),
        )
        if previous is not None:
            # Follow-up tags of the same dispute keep what was already known,
            # including who raised it.
            player2 = previous.player2
            if player2 is None:
                player2 = next(
                    (p for p in (dispute.player2, msg.author.id)
                     if p is not None and p != previous.player1_id), None)
            dispute = dataclasses.replace(
                dispute,
                player1_id=previous.player1_id,
                player2=player2,
                opened_at=previous.opened_at,
                countries=dispute.countries or previous.countries,
                decision_channel_id=previous.decision_channel_id,
            )
        self.registry.open(dispute)
        if msg.author.id != dispute.player1_id:
            self.registry.link_player(msg.author.id, ref_thread.id)
        return dispute

    async def mirror_player_message(self, msg) -> bool:
        """Copies a linked player's dispute channel message into their
           referee thread. Returns whether anything was mirrored.
        """
        threads = self.registry.threads_for_player(msg.author.id)
        if not threads:
            return False
        ref_thread_id = self.registry.ref_thread_for(msg.channel.id)
        if ref_thread_id not in threads:
            ref_thread_id = threads[-1]

        ref_thread = await referees.resolve_channel(msg.guild, ref_thread_id)
        if ref_thread is None:
            logger.info("Referee thread %s is gone, unlinking", ref_thread_id)
            self.registry.forget_ref_thread(ref_thread_id)
            return False

        try:
            await ref_thread.send(templates.clip_message(templates.mirror_post(
                msg.author.name, msg.content,
                [attachment.url for attachment in msg.attachments])))
        except discord.HTTPException as err:
            logger.warning("Could not mirror message %s to %s: %s", msg.id,
                           ref_thread_id, err)
            return False
        return True

    async def _fetch_thread(self, channel_id: int):
        channel = self.bot.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self.bot.fetch_channel(channel_id)
        except (discord.NotFound, discord.Forbidden):
            return None

    async def relay_to_thread(self, msg, ref_thread_id: int) -> bool:
        """Forwards a direct message, attachments included, to a referee
           thread. Returns False if the thread no longer exists.
        """
        ref_thread = await self._fetch_thread(ref_thread_id)
        if ref_thread is None:
            self.registry.forget_ref_thread(ref_thread_id)
            return False
        text = templates.dm_relay_header(msg.author.name, msg.author.id)
        if msg.content:
            text += f"\n{msg.content}"
        await referees.forward_to_thread(ref_thread, text, msg.attachments)
        return True

    async def relay_direct_message(self, msg) -> None:
        """Relays a player's DM to the referee thread of their dispute,
           asking which dispute it's about if there are several.
        """
        disputes = [self.registry.get(ref_id) for ref_id in
                    reversed(self.registry.threads_for_player(msg.author.id))]
        disputes = [d for d in disputes if d is not None]

        if not disputes:
            await msg.channel.send(templates.no_open_dispute_notice(
                cfg("REFBOT_DISPUTE_CHANNEL_ID")))
            return

        if len(disputes) == 1:
            await msg.channel.send(
                await self._relay_picked(msg, disputes[0].ref_thread_id))
            return

        async def on_pick(ref_thread_id: int) -> str:
            return await self._relay_picked(msg, ref_thread_id)

        view = DisputePickerView(msg.author.id, disputes, on_pick)
        view.message = await msg.channel.send(
            "You have several open disputes. Which one is this message "
            "about?", view=view)

    async def _relay_picked(self, msg, ref_thread_id: int) -> str:
        dispute = self.registry.get(ref_thread_id)
        if dispute is None or ref_thread_id not in \
                self.registry.threads_for_player(msg.author.id):
            return "That dispute has already been closed."
        try:
            relayed = await self.relay_to_thread(msg, ref_thread_id)
        except discord.HTTPException as err:
            logger.warning("Could not relay DM %s to %s: %s", msg.id,
                           ref_thread_id, err)
            return ("Couldn't forward your message to the referees. Please "
                    "try again in a moment.")
        if not relayed:
            return "That dispute is no longer open."
        return f"Forwarded to the referees of **{dispute.label}**."

    async def players_line(self, guild, dispute: Optional[Dispute],
                           dispute_thread_id: Optional[int]) -> str:
        """Mentions of the two players of the dispute, if they're known."""
        known = dispute.players if dispute is not None else []
        if len(known) >= 2:
            return " ".join(templates.user_mention(i) for i in known[:2])

        mentioned = list(known)
        if dispute_thread_id is not None:
            dispute_thread = await referees.resolve_channel(guild,
                                                            dispute_thread_id)
            try:
                if dispute_thread is not None:
                    async for message in dispute_thread.history(
                            limit=10, oldest_first=True):
                        for user in message.mentions:
                            if user.id not in mentioned:
                                mentioned.append(user.id)
            except discord.HTTPException as err:
                logger.debug("Could not read dispute thread %s: %s",
                             dispute_thread_id, err)
        return " ".join(templates.user_mention(i) for i in mentioned[:2])

    async def post_decision(self, ctx, grant: str, team_rule: str, issue: str,
                            channel=None) -> None:
        """Posts a templated ruling to the decision channel of the referee
           thread the command was used in, or to the override channel.
        """
        current = ctx.channel
        in_thread = is_thread(current)
        if not in_thread and channel is None:
            await ctx.respond("Use this command from within the ref thread "
                              "(or specify a channel).", ephemeral=True)
            return

        dispute = self.registry.get(current.id) if in_thread else None
        dispute_thread_id = (self.registry.dispute_for_ref(current.id)
                             if in_thread else None)

        target = channel
        if target is None:
            auto = self.registry.decision_channel_for_ref(current.id)
            if auto is not None:
                target = await referees.resolve_channel(ctx.guild, auto)
        if target is None:
            await ctx.respond("No target channel found. Provide one with "
                              "/decision channel:...", ephemeral=True)
            return

        if dispute is not None and dispute.countries:
            countries = list(dispute.countries)
        elif in_thread:
            countries = templates.countries_from_thread_name(current.name)
        else:
            countries = []

        try:
            players = await self.players_line(ctx.guild, dispute,
                                              dispute_thread_id)
            await target.send(templates.decision_post(
                countries, players, ctx.author.id, issue, grant, team_rule))
        except discord.HTTPException:
            logger.exception("Failed to post decision to %s", target.id)
            await ctx.respond("Failed to post decision. Check my permissions "
                              "and try again.", ephemeral=True)
            return
        logger.info("%s posted a decision to %s", ctx.author, target.id)
        await ctx.respond(
            f"Posted decision to {templates.channel_mention(target.id)}.",
            ephemeral=True)

    async def close_current_dispute(self, ctx) -> Optional[Dispute]:
        """Forgets the dispute of the current referee thread, tells the
           player, and archives the thread.
        """
        current = ctx.channel
        if not is_thread(current) or (
                current.id not in self.registry and
                self.registry.dispute_for_ref(current.id) is None):
            await ctx.respond("This isn't an open referee thread.",
                              ephemeral=True)
            return None

        dispute = self.registry.close(current.id)
        logger.info("%s closed the dispute of %s", ctx.author, current.id)
        await ctx.respond(f"{ctx.author.name} has closed this dispute.")

        if dispute is not None:
            try:
                player = self.bot.get_user(dispute.player1_id) or \
                    await self.bot.fetch_user(dispute.player1_id)
                await player.send(templates.closed_notice(dispute.label))
            except discord.HTTPException as err:
                logger.debug("Could not DM closing notice to %s: %s",
                             dispute.player1_id, err)

        try:
            await current.edit(archived=True, locked=True)
        except discord.HTTPException as err:
            logger.warning("Could not archive %s: %s", current.id, err)
        return dispute

    def disputes_summary(self) -> str:
        """Listing of the open disputes, newest first."""
        disputes = self.registry.open_disputes
        if not disputes:
            return "No open disputes."
        lines = [f"{len(disputes)} open dispute(s):"]
        for dispute in disputes:
            lines.append(
                f"- {templates.channel_mention(dispute.ref_thread_id)} "
                f"{dispute.label} ({dispute.issue_category}, opened "
                f"{dispute.opened_at.diff_for_humans()})")
        return templates.clip_message("\n".join(lines))

    @discord.slash_command(guild_ids=GUILD_IDS,
                           description="Test if bot is active")
    async def ping(self, ctx):
        """Just a standard Discord bot ping test command for confirming
           whether the bot is online or not.
        """
        await ctx.respond("pong", ephemeral=True)

    @discord.slash_command(
        guild_ids=GUILD_IDS,
        description="Post a dispute decision from the ref thread.")
    @discord.default_permissions(manage_messages=True)
    async def decision(
        self,
        ctx: discord.ApplicationContext,
        grant: discord.Option(str, "Rematch granted? yes/no",
                              choices=GRANT_OPTIONS),
        team_rule: discord.Option(str, "Team/lead rule to apply",
                                  choices=TEAM_RULE_OPTIONS),
        issue: discord.Option(str, "Short issue text to insert"),
        channel: discord.Option(discord.TextChannel,
                                "Override target channel (optional)",
                                required=False, default=None),
    ):
        """Referee command for posting the ruling of a dispute."""
        await self.post_decision(ctx, grant, team_rule, issue, channel)

    @discord.slash_command(
        guild_ids=GUILD_IDS,
        description="Close the dispute of this ref thread and archive it.")
    @discord.default_permissions(manage_messages=True)
    async def close_dispute(self, ctx: discord.ApplicationContext):
        """Referee command for closing a dispute."""
        await self.close_current_dispute(ctx)

    @discord.slash_command(guild_ids=GUILD_IDS,
                           description="List the open disputes.")
    @discord.default_permissions(manage_messages=True)
    async def disputes(self, ctx: discord.ApplicationContext):
        """Referee command for listing the open disputes."""
        await ctx.respond(self.disputes_summary(), ephemeral=True)


class ErrorHandlerCog(commands.Cog):
    """Helper class for error handling."""

    def __init__(self, parent_bot):
        self.bot = parent_bot

    @commands.Cog.listener()
    async def on_application_command_error(self, ctx, err):
        """Error handler for the slash commands."""
        # Missing permissions, or used outside of the guild.
        if isinstance(err, discord.CheckFailure):
            await ctx.respond(
                f"{ctx.author.mention} Sorry, you can't use this command "
                "here.", ephemeral=True)
            return
        # Something else happened! Just raise the error for the logs to catch.
        raise err


def create_bot() -> commands.Bot:
    """Builds the bot, with the intents and cogs the dispute workflow
       needs.
    """
    intents = discord.Intents.none()
    intents.guilds = True
    intents.members = True  # for finding conflicted referees
    intents.guild_messages = True
    intents.dm_messages = True
    intents.message_content = True
    bot = commands.Bot(case_insensitive=True, intents=intents)
    for cog in (DisputeCog, ErrorHandlerCog):
        bot.add_cog(cog(bot))
    return bot


def main() -> None:
    """Entry point: sets up logging, validates the token and runs the bot.
    """
    setup_logging()
    sys.excepthook = handle_exception

    token = cfg("REFBOT_SECRET_TOKEN").strip()
    # Discord tokens have dots.
    if not token or "." not in token:
        logger.critical("REFBOT_SECRET_TOKEN missing/invalid (not set, or "
                        "trimmed). Set it in the env or cfg/config.yml.")
        sys.exit(1)
    logger.info("Token loaded (length %d).", len(token))
    logger.info("Now running %s v.%s", __title__, __version__)

    dispute_bot = create_bot()

    if cfg("REFBOT_DEBUG"):
        logger.debug("Intents (%s):", dispute_bot.intents)
        for intent, enabled in iter(dispute_bot.intents):
            if enabled:
                logger.debug("* %s", intent)

    dispute_bot.run(token)


if __name__ == "__main__":
    main()
