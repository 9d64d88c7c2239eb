"""Interactive components sent by the bot."""

import logging
from typing import Awaitable, Callable, Iterable

import discord

from refbot.disputes import Dispute


logger = logging.getLogger(__name__)

# Discord allows at most 25 options per select menu, and 100 characters
# per option label / description.
MAX_OPTIONS = 25
MAX_OPTION_TEXT = 100


def _clip(text: str) -> str:
    return text if len(text) <= MAX_OPTION_TEXT else \
        text[:MAX_OPTION_TEXT - 1] + "…"


class DisputePicker(discord.ui.Select):
    """Select menu listing a player's open disputes."""

    def __init__(self, disputes: Iterable[Dispute]):
        options = [
            discord.SelectOption(
                label=_clip(d.ref_thread_name or d.label),
                value=str(d.ref_thread_id),
                description=_clip(
                    f"{d.issue_category}, opened "
                    f"{d.opened_at.diff_for_humans()}"),
            )
            for d in list(disputes)[:MAX_OPTIONS]
        ]
        super().__init__(placeholder="Which dispute is this about?",
                         min_values=1, max_values=1, options=options)

    async def callback(self, interaction: discord.Interaction):
        view = self.view
        if interaction.user.id != view.owner_id:
            await interaction.response.send_message(
                "This menu isn't for you.", ephemeral=True)
            return
        # Relaying re-uploads attachments, which can outlast the 3 second
        # interaction deadline.
        await interaction.response.defer()
        ref_thread_id = int(self.values[0])
        view.stop()
        try:
            result = await view.on_pick(ref_thread_id)
        except discord.HTTPException as err:
            logger.warning("Relaying to %s failed: %s", ref_thread_id, err)
            result = ("Couldn't forward your message to the referees. "
                      "Please try again in a moment.")
        await interaction.edit_original_response(content=result, view=None)


class DisputePickerView(discord.ui.View):
    """Asks a player with several open disputes which one a direct message
       belongs to. on_pick is awaited with the chosen referee thread ID and
       returns the text the menu is replaced with.
    """

    def __init__(self, owner_id: int, disputes: Iterable[Dispute],
                 on_pick: Callable[[int], Awaitable[str]],
                 timeout: float = 300):
        super().__init__(timeout=timeout)
        self.owner_id = owner_id
        self.on_pick = on_pick
        self.message = None
        self.add_item(DisputePicker(disputes))

    async def on_timeout(self):
        if self.message is None:
            return
        try:
            await self.message.edit(
                content="No dispute picked; your message was not forwarded. "
                        "Send it again to retry.",
                view=None)
        except discord.HTTPException as err:
            logger.debug("Could not expire dispute picker: %s", err)
