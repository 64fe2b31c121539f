from __future__ import annotations

import logging
import sys
from typing import Callable, Optional

from .logging_utils import render_fields_block

LOGGER = logging.getLogger(__name__)


def detect_current_platform() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "mac"
    return "linux"


class PlatformContext:
    """Tracks the build tool's active platform and switches only on change.

    The context is global to the workspace, so a batch shares a single
    instance and targets are processed sequentially.
    """

    def __init__(self, switcher: Callable[[str], None], current: Optional[str] = None) -> None:
        self._switcher = switcher
        self.current = current or detect_current_platform()
        self.switch_count = 0

    def ensure(self, target: Optional[str]) -> bool:
        """Make ``target`` the active platform. Returns True when a switch happened."""
        if target is None or target == self.current:
            return False

        LOGGER.info(
            render_fields_block(
                "Switching Platform",
                {
                    "From": self.current,
                    "To": target,
                },
            )
        )
        self._switcher(target)
        self.current = target
        self.switch_count += 1
        return True
