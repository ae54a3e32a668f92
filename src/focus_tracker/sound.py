from __future__ import annotations

import asyncio
import logging
import sys
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)

CHIME_TONES = 2
CHIME_GAP_SECONDS = 0.5


class SoundPlayer(Protocol):
    def play(self) -> None: ...


class TerminalChime:
    """Two terminal bells half a second apart, scheduled on the running loop."""

    def __init__(
        self,
        stream: TextIO | None = None,
        tones: int = CHIME_TONES,
        gap_seconds: float = CHIME_GAP_SECONDS,
    ) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.tones = tones
        self.gap_seconds = gap_seconds
        self._pending: set[asyncio.Task[None]] = set()

    def play(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._bell()
            return
        task = loop.create_task(self._ring())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _ring(self) -> None:
        for i in range(self.tones):
            self._bell()
            if i < self.tones - 1:
                await asyncio.sleep(self.gap_seconds)

    def _bell(self) -> None:
        try:
            self.stream.write("\a")
            self.stream.flush()
        except (OSError, ValueError):
            logger.exception("Error playing notification sound")


class SilentPlayer:
    def play(self) -> None:
        return None
