from refbot import templates


def test_preset_questions():
    text = templates.preset_questions(300, ["Who?", "When?"])
    assert text == ("Thanks for tagging <@&300>.\n"
                    "Please answer the following:\n"
                    "- Who?\n"
                    "- When?")


def test_ref_thread_name():
    assert templates.ref_thread_name("Ash", ["United Kingdom", "Japan"]) == \
        "Ref – Ash – united-kingdom vs japan"
    assert templates.ref_thread_name("Ash", []) == "Ref – Ash – dispute"
    long_name = templates.ref_thread_name("A" * 200, ["Japan"])
    assert len(long_name) == templates.MAX_THREAD_NAME_LENGTH


def test_countries_from_thread_name():
    name = templates.ref_thread_name("Ash", ["United Kingdom", "Japan"])
    assert templates.countries_from_thread_name(name) == \
        ["united kingdom", "japan"]
    assert templates.countries_from_thread_name("Ref – Ash – dispute") == []
    assert templates.countries_from_thread_name("random thread") == []
    assert templates.countries_from_thread_name(None) == []


def test_ref_seed_post():
    post = templates.ref_seed_post(300, 301, "Ash", ["Japan", "Peru"],
                                   "https://discord.com/x")
    assert post.split("\n") == [
        "<@&300> <@&301>",
        "Ref thread for **Ash**.",
        "**Countries:** Japan vs Peru",
        "Dispute link: https://discord.com/x",
    ]
    assert "**Countries:** (not detected)" in \
        templates.ref_seed_post(300, 301, "Ash", [], "u")


def test_dispute_context_post():
    post = templates.dispute_context_post(
        1, "@gary", ["Japan", "Peru"], "Lag", "It lagged", "https://x")
    assert post.split("\n") == [
        "🧵 New dispute raised by <@1> vs @gary",
        "**Countries:** Japan vs Peru",
        "**Category:** Lag",
        "**Summary:** It lagged",
        "Source: https://x",
    ]


def test_dispute_context_post_skips_empty_lines():
    post = templates.dispute_context_post(1, None, [], "", "", "https://x")
    assert post.split("\n") == [
        "🧵 New dispute raised by <@1> vs (opponent not detected)",
        "Source: https://x",
    ]


def test_mirror_post():
    assert templates.mirror_post("ash", "see clip") == "👤 **ash:** see clip"
    assert templates.mirror_post("ash", "") == \
        "👤 **ash:** (attachment/message)"
    post = templates.mirror_post("ash", "", ["https://cdn/a.png"])
    assert post.endswith("\n(Attachments present)\nhttps://cdn/a.png")


def test_clip_message():
    assert templates.clip_message("short") == "short"
    clipped = templates.clip_message("x" * 5000)
    assert len(clipped) == templates.MAX_MESSAGE_LENGTH
    assert clipped.endswith("…")


def test_team_rule_text():
    assert templates.team_rule_text("new_teams") == ["New teams may be used."]
    assert templates.team_rule_text("nonsense") == []
    # Callers get a copy.
    templates.team_rule_text("new_teams").append("x")
    assert templates.team_rule_text("new_teams") == ["New teams may be used."]


def test_choices_cover_rules():
    assert set(templates.TEAM_RULE_CHOICES.values()) == \
        set(templates.TEAM_RULES)
    assert set(templates.GRANT_CHOICES.values()) == {"will", "will not"}


def test_decision_post():
    post = templates.decision_post(
        ["United Kingdom", "Japan"], "<@1> <@2>", 7, "a disconnect",
        "will not", "same_lead_flex_back")
    assert post.split("\n") == [
        "Post: #united-kingdom-japan",
        "",
        "<@1> <@2>",
        "After reviewing the match dispute set by <@7> regarding a "
        "disconnect. The Referees team has decided that a rematch "
        "**will not** be granted.",
        "",
        "The same lead Pokémon must be used, the back line may be changed.",
        "",
        templates.CONFLICT_REMINDER,
    ]


def test_decision_post_without_context():
    post = templates.decision_post(["Japan"], "", 7, "lag", "will",
                                   "new_teams")
    lines = post.split("\n")
    assert lines[0] == "Post: (countries not detected)"
    assert lines[2] == templates.PLAYERS_PLACEHOLDER
