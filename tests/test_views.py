import discord
import pendulum
import pytest

from refbot.views import (DisputePicker, DisputePickerView, MAX_OPTIONS,
                          MAX_OPTION_TEXT)


@pytest.fixture
def disputes(make_dispute):
    now = pendulum.now()
    return [
        make_dispute(51, ref_thread_name="Ref – Ash – japan vs peru",
                     issue_category="Lag", opened_at=now),
        make_dispute(52, countries=("Chile", "Peru"),
                     opened_at=now.subtract(days=2)),
    ]


def make_interaction(mocker, user_id):
    interaction = mocker.MagicMock()
    interaction.user.id = user_id
    interaction.response.send_message = mocker.AsyncMock()
    interaction.response.defer = mocker.AsyncMock()
    interaction.edit_original_response = mocker.AsyncMock()
    return interaction


def pick(mocker, value):
    mocker.patch.object(DisputePicker, "values",
                        new_callable=mocker.PropertyMock,
                        return_value=[value])


@pytest.mark.asyncio
async def test_options(mocker, disputes):
    view = DisputePickerView(1, disputes, mocker.AsyncMock())
    options = view.children[0].options
    assert [o.value for o in options] == ["51", "52"]
    assert options[0].label == "Ref – Ash – japan vs peru"
    assert options[0].description.startswith("Lag, opened ")
    assert options[1].label == "Chile vs Peru"


@pytest.mark.asyncio
async def test_options_are_clipped(mocker, make_dispute):
    many = [make_dispute(i, ref_thread_name="x" * 300) for i in range(40)]
    view = DisputePickerView(1, many, mocker.AsyncMock())
    options = view.children[0].options
    assert len(options) == MAX_OPTIONS
    assert all(len(o.label) == MAX_OPTION_TEXT for o in options)


@pytest.mark.asyncio
async def test_pick_relays_and_replaces_menu(mocker, disputes):
    calls = []
    on_pick = mocker.AsyncMock(
        side_effect=lambda _: calls.append("relay") or "Forwarded.")
    view = DisputePickerView(1, disputes, on_pick)
    interaction = make_interaction(mocker, 1)
    interaction.response.defer.side_effect = lambda: calls.append("defer")
    pick(mocker, "52")

    await view.children[0].callback(interaction)

    on_pick.assert_awaited_once_with(52)
    assert calls == ["defer", "relay"]
    interaction.edit_original_response.assert_awaited_once_with(
        content="Forwarded.", view=None)
    assert view.is_finished()


@pytest.mark.asyncio
async def test_pick_relay_failure_still_answers(mocker, disputes):
    on_pick = mocker.AsyncMock(side_effect=discord.HTTPException(
        mocker.MagicMock(status=500), "upload failed"))
    view = DisputePickerView(1, disputes, on_pick)
    interaction = make_interaction(mocker, 1)
    pick(mocker, "51")

    await view.children[0].callback(interaction)

    interaction.response.defer.assert_awaited_once()
    kwargs = interaction.edit_original_response.await_args.kwargs
    assert kwargs["view"] is None
    assert kwargs["content"].startswith("Couldn't forward your message")


@pytest.mark.asyncio
async def test_pick_by_someone_else(mocker, disputes):
    on_pick = mocker.AsyncMock()
    view = DisputePickerView(1, disputes, on_pick)
    interaction = make_interaction(mocker, 2)
    pick(mocker, "51")

    await view.children[0].callback(interaction)

    on_pick.assert_not_called()
    interaction.response.send_message.assert_awaited_once_with(
        "This menu isn't for you.", ephemeral=True)
    interaction.response.defer.assert_not_called()
    interaction.edit_original_response.assert_not_called()


@pytest.mark.asyncio
async def test_timeout_expires_menu(mocker, disputes):
    view = DisputePickerView(1, disputes, mocker.AsyncMock())
    view.message = mocker.MagicMock()
    view.message.edit = mocker.AsyncMock()
    await view.on_timeout()
    kwargs = view.message.edit.await_args.kwargs
    assert kwargs["view"] is None
    assert "not forwarded" in kwargs["content"]


@pytest.mark.asyncio
async def test_timeout_edit_failure_ignored(mocker, disputes):
    view = DisputePickerView(1, disputes, mocker.AsyncMock())
    view.message = mocker.MagicMock()
    view.message.edit = mocker.AsyncMock(side_effect=discord.NotFound(
        mocker.MagicMock(status=404), "Unknown Message"))
    await view.on_timeout()


@pytest.mark.asyncio
async def test_timeout_without_message(mocker, disputes):
    view = DisputePickerView(1, disputes, mocker.AsyncMock())
    await view.on_timeout()
