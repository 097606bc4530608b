from __future__ import annotations

import abc
import json
from typing import Optional

from tidal_cli.desktop.protocol import DevToolsClient

TRANSPORT_LABELS = ("Shuffle", "Previous", "Play", "Pause", "Next", "Repeat")


class PlayerActions(abc.ABC):
    """UI actions against one version of the desktop player.

    The app's markup is not under our control, so every action reports
    whether it found its control instead of raising.
    """

    @abc.abstractmethod
    async def click_transport(self, label: str) -> bool:
        """Click a player-bar button (Play, Pause, Next, Previous, Shuffle, Repeat)."""

    @abc.abstractmethod
    async def play_page(self) -> bool:
        """Start playback of the currently open album, playlist, mix or track page."""

    @abc.abstractmethod
    async def playback_state(self) -> str:
        """Return ``"playing"``, ``"paused"`` or ``"stopped"`` as shown by the player bar."""

    @abc.abstractmethod
    async def get_volume(self) -> Optional[int]:
        """Return the volume slider value, or None when it cannot be read."""

    @abc.abstractmethod
    async def set_volume(self, level: int) -> bool:
        """Move the volume slider to ``level`` (0-100)."""


_VOLUME_SLIDER = 'input[type="range"][aria-label*="olume"], input[type="range"][data-test*="olume"]'


class DesktopPlayerActions(PlayerActions):
    """Actions for the current desktop.tidal.com player.

    The transport cluster is Shuffle, Previous, Play/Pause, Next, Repeat and
    Volume; it is located from the Shuffle button, which only appears there.
    """

    def __init__(self, client: DevToolsClient) -> None:
        self.client = client

    async def click_transport(self, label: str) -> bool:
        if label not in TRANSPORT_LABELS:
            raise ValueError(f"Unknown transport button: {label}")
        result = await self.client.evaluate(
            f"""(() => {{
  const buttons = [...document.querySelectorAll('button[aria-label]')];
  const start = buttons.findIndex(b => b.getAttribute('aria-label') === 'Shuffle');
  if (start === -1) return false;
  for (let i = start; i < Math.min(buttons.length, start + 7); i++) {{
    if (buttons[i].getAttribute('aria-label') === {json.dumps(label)}) {{ buttons[i].click(); return true; }}
  }}
  return false;
}})()"""
        )
        return result is True

    async def play_page(self) -> bool:
        if await self.client.click_button("Play", index=0):
            return True
        result = await self.client.evaluate(
            """(() => {
  const button = document.querySelector('button[class*="_playButton"]');
  if (button) { button.click(); return true; }
  return false;
})()"""
        )
        return result is True

    async def playback_state(self) -> str:
        result = await self.client.evaluate(
            """(() => {
  const labels = [...document.querySelectorAll('button[aria-label]')].map(b => b.getAttribute('aria-label'));
  if (labels.includes('Pause')) return 'playing';
  if (labels.includes('Previous') || labels.includes('Next')) return 'paused';
  return 'stopped';
})()"""
        )
        return result if result in ("playing", "paused", "stopped") else "stopped"

    async def get_volume(self) -> Optional[int]:
        value = await self.client.evaluate(
            f"""(() => {{
  const slider = document.querySelector({json.dumps(_VOLUME_SLIDER)});
  if (slider) return slider.value;
  const el = document.querySelector('[aria-label*="olume"][role="slider"]');
  return el ? el.getAttribute('aria-valuenow') : null;
}})()"""
        )
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None

    async def set_volume(self, level: int) -> bool:
        if not 0 <= level <= 100:
            raise ValueError("Volume must be 0-100")
        result = await self.client.evaluate(
            f"""(() => {{
  const slider = document.querySelector({json.dumps(_VOLUME_SLIDER)});
  if (!slider) {{
    const button = document.querySelector('button[aria-label="Volume"]');
    if (button) button.click();
    return 'clicked_volume_btn';
  }}
  const setter = Object.getOwnPropertyDescriptor(window.HTMLInputElement.prototype, 'value')?.set;
  if (!setter) return 'no_setter';
  setter.call(slider, {int(level)});
  slider.dispatchEvent(new Event('input', {{ bubbles: true }}));
  slider.dispatchEvent(new Event('change', {{ bubbles: true }}));
  return 'set';
}})()"""
        )
        return result == "set"
