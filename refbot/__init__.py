"""
Discord bot for routing match disputes to the referee team.
A player tags the referee role in the dispute channel, and the bot opens
a private referee thread for the dispute, mirrors the player's evidence
into it, and lets the referees post a templated ruling.

Usage:
 Triggers:
   - Mentioning the trigger role inside the dispute channel (or one of its
     threads / forum posts) opens a dispute. The bot asks the preset
     questions, creates a private referee thread, removes referees whose
     country roles conflict with the dispute, and DMs the player.

   - Further messages by the player in the dispute channel, and direct
     messages sent to the bot, are mirrored into the referee thread.
     If the player has several open disputes, the bot asks which one a
     direct message belongs to.

 Slash commands:
   - decision      — Post a ruling from within a referee thread to the
                     detected decision channel (or an override channel).

   - close_dispute — Forget the dispute, notify the player, and archive
                     the referee thread.

   - disputes      — List the currently open disputes.

   - ping          — Bot will simply respond with "pong". Use to test if
                     the bot is still online and responsive.

 Config values:
   The config values have been documented as comments in the
   cfg/config.yml file itself.
"""

__title__ = "Referee Dispute Bot for Discord"
__author__ = "https://github.com/Rainyan and collaborators"
__license__ = "MIT"
__copyright__ = "Copyright (c) 2021- https://github.com/Rainyan and collaborators"
__version__ = "1.0.0"
