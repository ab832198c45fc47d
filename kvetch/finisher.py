"""
One-shot latch that ends the waiting phase of a request/response scenario.

The registry calls ``signal()`` when a watched mocked call reaches its marked
iteration; the scenario awaits ``wait()`` while racing the entry point's own
completion. Only the first signal counts.
"""
import asyncio
from typing import List, Optional, Tuple

from .logging_config import get_logger

logger = get_logger("finisher")


class FinisherCoordinator:

    def __init__(self):
        self.targets: List[Tuple[str, str, int]] = []
        self._fired = False
        self._fired_by: Optional[Tuple[str, str]] = None
        self._event: Optional[asyncio.Event] = None

    def arm(self, mock_name: str, func_name: str, iteration: int = 0) -> None:
        self.targets.append((mock_name, func_name, iteration))
        logger.debug(f"Armed finisher {mock_name}.{func_name} at iteration {iteration}")

    def disarm(self) -> None:
        self.targets.clear()

    @property
    def armed(self) -> bool:
        return bool(self.targets)

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def fired_by(self) -> Optional[Tuple[str, str]]:
        return self._fired_by

    def signal(self, mock_name: Optional[str] = None, func_name: Optional[str] = None) -> bool:
        """Wake the waiter once. Returns False when the latch had already fired."""
        if self._fired:
            return False
        self._fired = True
        self._fired_by = (mock_name, func_name) if mock_name else None
        logger.debug(f"Finisher fired by {mock_name}.{func_name}")
        if self._event is not None:
            self._event.set()
        return True

    async def wait(self) -> Optional[Tuple[str, str]]:
        if self._event is None:
            self._event = asyncio.Event()
            if self._fired:
                self._event.set()
        await self._event.wait()
        return self._fired_by
