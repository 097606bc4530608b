import pytest

from tidal_cli.desktop.actions import DesktopPlayerActions


class DummyClient:
    def __init__(self, results=None, click_result=False):
        self.results = list(results or [])
        self.click_result = click_result
        self.expressions = []
        self.clicked = []

    async def evaluate(self, expression, await_promise=False):
        self.expressions.append(expression)
        return self.results.pop(0) if self.results else None

    async def click_button(self, aria_label, container=None, index=0):
        self.clicked.append(aria_label)
        return self.click_result


@pytest.mark.asyncio
async def test_click_transport():
    client = DummyClient([True])
    assert await DesktopPlayerActions(client).click_transport("Next") is True
    assert '=== "Next"' in client.expressions[0]
    assert "'Shuffle'" in client.expressions[0]


@pytest.mark.asyncio
async def test_click_transport_rejects_unknown_label():
    with pytest.raises(ValueError):
        await DesktopPlayerActions(DummyClient()).click_transport("Eject")


@pytest.mark.asyncio
async def test_play_page_falls_back_to_play_all_button():
    client = DummyClient([True], click_result=False)
    assert await DesktopPlayerActions(client).play_page() is True
    assert client.clicked == ["Play"]
    assert len(client.expressions) == 1
    assert "_playButton" in client.expressions[0]


@pytest.mark.asyncio
async def test_playback_state_and_volume():
    actions = DesktopPlayerActions(DummyClient(["paused", "37", None, "set", "clicked_volume_btn"]))
    assert await actions.playback_state() == "paused"
    assert await actions.get_volume() == 37
    assert await actions.get_volume() is None
    assert await actions.set_volume(50) is True
    assert await actions.set_volume(10) is False


@pytest.mark.asyncio
async def test_set_volume_range():
    with pytest.raises(ValueError):
        await DesktopPlayerActions(DummyClient()).set_volume(101)
