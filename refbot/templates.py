"""Text templates for everything the bot posts."""

from typing import Iterable, Optional

from refbot.extract import slug


# Discord's limits for thread names and message contents.
MAX_THREAD_NAME_LENGTH = 100
MAX_MESSAGE_LENGTH = 2000
THREAD_NAME_SEPARATOR = " – "
PLAYERS_PLACEHOLDER = "@Playername1 @Playername2"

GRANT_CHOICES = {
    "will be granted": "will",
    "will NOT be granted": "will not",
}
TEAM_RULE_CHOICES = {
    "Same teams & same lead": "same_teams_same_lead",
    "Same lead, backline may change": "same_lead_flex_back",
    "New teams allowed": "new_teams",
}
TEAM_RULES = {
    "same_teams_same_lead": [
        "The same teams must be used, with the same lead Pokémon.",
    ],
    "same_lead_flex_back": [
        "The same lead Pokémon must be used, the back line may be changed.",
    ],
    "new_teams": [
        "New teams may be used.",
    ],
}
CONFLICT_REMINDER = (
    "We would like to remind all parties involved that referees and staff "
    "members from countries involved in disputes cannot be involved in the "
    "resolution of the dispute.")


def clip_message(text: str) -> str:
    """Cuts the text to fit in a single Discord message."""
    if len(text) <= MAX_MESSAGE_LENGTH:
        return text
    return text[:MAX_MESSAGE_LENGTH - 1] + "…"


def role_mention(role_id: int) -> str:
    return f"<@&{role_id}>"


def user_mention(user_id: int) -> str:
    return f"<@{user_id}>"


def channel_mention(channel_id: int) -> str:
    return f"<#{channel_id}>"


def countries_line(countries: Iterable[str]) -> str:
    countries = list(countries)
    if not countries:
        return "**Countries:** (not detected)"
    return f"**Countries:** {' vs '.join(countries)}"


def preset_questions(ref_role_id: int, queries: Iterable[str]) -> str:
    """Questions posted once in every new dispute thread."""
    bullets = "\n".join(f"- {query}" for query in queries)
    return (f"Thanks for tagging {role_mention(ref_role_id)}.\n"
            f"Please answer the following:\n{bullets}")


def ref_thread_name(player_name: str, countries: Iterable[str]) -> str:
    """Name of a referee thread, e.g. "Ref – Ash – finland vs sweden"."""
    versus = " vs ".join(slug(c) for c in countries) or "dispute"
    name = THREAD_NAME_SEPARATOR.join(("Ref", player_name, versus))
    return name[:MAX_THREAD_NAME_LENGTH]


def countries_from_thread_name(name: Optional[str]) -> list[str]:
    """Reads the countries back from a referee thread name.
       Thread names hold slugs, so "united-kingdom" comes back as
       "united kingdom".
    """
    if not name or THREAD_NAME_SEPARATOR.strip() not in name:
        return []
    versus = name.split(THREAD_NAME_SEPARATOR.strip())[-1].strip()
    if " vs " not in versus:
        return []
    return [part.replace("-", " ").strip() for part in versus.split(" vs ")]


def ref_seed_post(ref_role_id: int, jr_ref_role_id: int, player_name: str,
                  countries: Iterable[str], dispute_url: str) -> str:
    """First post of a new referee thread."""
    return "\n".join((
        f"{role_mention(ref_role_id)} {role_mention(jr_ref_role_id)}",
        f"Ref thread for **{player_name}**.",
        countries_line(countries),
        f"Dispute link: {dispute_url}",
    ))


def dispute_context_post(author_id: int, opponent: Optional[str],
                         countries: Iterable[str], issue_category: str,
                         summary: str, source_url: str) -> str:
    """Context of a (new or repeated) dispute trigger, for the referees."""
    countries = list(countries)
    opponent = opponent or "(opponent not detected)"
    lines = (
        f"🧵 New dispute raised by {user_mention(author_id)} vs {opponent}",
        countries_line(countries) if countries else "",
        f"**Category:** {issue_category}" if issue_category else "",
        f"**Summary:** {summary}" if summary else "",
        f"Source: {source_url}",
    )
    return "\n".join(line for line in lines if line)


def decision_channel_notice(channel_id: int) -> str:
    return f"📣 Default decision channel detected: {channel_mention(channel_id)}"


def conflict_notice(countries: Iterable[str]) -> str:
    return ("🚫 Removed conflicted referees based on country roles: "
            f"{' / '.join(countries)}")


def player_notice(thread_name: str) -> str:
    """DM sent to the player once the referees have been notified."""
    return (f"Your dispute has been forwarded to the referees "
            f"(**{thread_name}**).\n"
            "You can reply to this message with extra evidence, such as "
            "screenshots or video links, and I will pass it on to them.")


def player_notice_fallback(author_id: int) -> str:
    """Public version of player_notice, for when DMs are closed."""
    return (f"{user_mention(author_id)} Your dispute has been forwarded to "
            "the referees. I couldn't DM you, so please keep posting your "
            "evidence in this thread.")


def closed_notice(label: str) -> str:
    return f"Your dispute (**{label}**) has been closed by the referees."


def no_open_dispute_notice(dispute_channel_id: int) -> str:
    return ("You don't have any open disputes. To raise one, tag the "
            f"referees in {channel_mention(dispute_channel_id)}.")


def mirror_post(author_name: str, content: str,
                attachment_urls: Iterable[str] = ()) -> str:
    """Copy of a player's dispute channel message, for the referees."""
    attachment_urls = list(attachment_urls)
    post = f"👤 **{author_name}:** {content or '(attachment/message)'}"
    if attachment_urls:
        post += "\n(Attachments present)\n" + "\n".join(attachment_urls)
    return post


def dm_relay_header(author_name: str, author_id: int) -> str:
    """Header of a direct message relayed to the referee thread."""
    return f"📨 **{author_name}** ({user_mention(author_id)}) via DM:"


def team_rule_text(rule: str) -> list[str]:
    return list(TEAM_RULES.get(rule, []))


def decision_header(countries: list[str]) -> str:
    if len(countries) == 2:
        return f"Post: #{slug(countries[0])}-{slug(countries[1])}"
    return "Post: (countries not detected)"


def decision_post(countries: list[str], players_line: str, author_id: int,
                  issue: str, grant: str, rule: str) -> str:
    """The ruling posted to the decision channel."""
    return "\n".join((
        decision_header(countries),
        "",
        players_line or PLAYERS_PLACEHOLDER,
        f"After reviewing the match dispute set by {user_mention(author_id)} "
        f"regarding {issue}. The Referees team has decided that a rematch "
        f"**{grant}** be granted.",
        "",
        *team_rule_text(rule),
        "",
        CONFLICT_REMINDER,
    ))
