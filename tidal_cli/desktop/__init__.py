from .actions import DesktopPlayerActions, PlayerActions
from .launcher import DesktopLauncher
from .protocol import DevToolsClient
from .state import ReadinessState, ReadinessTracker, SystemProbes

__all__ = [
    "DesktopLauncher",
    "DesktopPlayerActions",
    "DevToolsClient",
    "PlayerActions",
    "ReadinessState",
    "ReadinessTracker",
    "SystemProbes",
]
