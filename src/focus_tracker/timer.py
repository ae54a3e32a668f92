from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from focus_tracker.duration import format_mmss
from focus_tracker.errors import TimerStateError
from focus_tracker.models import Phase, TimerStatus
from focus_tracker.presets import CUSTOM_PRESET_ID, PresetBook, TimerPreset
from focus_tracker.recorder import RecordOutcome, SessionRecorder
from focus_tracker.sound import SoundPlayer
from focus_tracker.time_utils import Clock, utc_now

logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0


@dataclass(frozen=True)
class TimerState:
    phase: Phase
    status: TimerStatus
    seconds_remaining: int
    seconds_total: int
    preset_id: str
    awaiting_decision: bool
    sound_enabled: bool
    started_at: datetime | None

    @property
    def progress(self) -> float:
        if self.seconds_remaining <= 0:
            return 1.0
        return 1 - self.seconds_remaining / self.seconds_total

    @property
    def display(self) -> str:
        return format_mmss(self.seconds_remaining)


@dataclass(frozen=True)
class PhaseCompletion:
    finished_phase: Phase
    next_phase: Phase
    recorded_minutes: int | None


TickListener = Callable[[TimerState], None]
CompletionListener = Callable[[PhaseCompletion], None]


class FocusTimer:
    """Work/break countdown driven by a one-second tick.

    Reaching zero pauses the timer and leaves it waiting for
    ``resolve_completion``. A finished work phase is handed to the recorder in
    the background; whatever the recorder reports, the timer state is not
    touched again.
    """

    def __init__(
        self,
        presets: PresetBook | None = None,
        *,
        recorder: SessionRecorder | None = None,
        sound: SoundPlayer | None = None,
        sound_enabled: bool = True,
        preset_id: str | None = None,
        tick_interval: float = TICK_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        self.presets = presets if presets is not None else PresetBook()
        self.recorder = recorder
        self.sound = sound
        self.tick_interval = tick_interval
        self._clock = clock

        self._preset_id = self.presets.get(preset_id or self.presets.default_id).id
        self._phase = Phase.WORK
        self._status = TimerStatus.IDLE
        self._sound_enabled = sound_enabled
        self._awaiting_decision = False
        self._started_at: datetime | None = None
        self._seconds_total = self._phase_seconds()
        self._seconds_remaining = self._seconds_total

        self._ticker: asyncio.Task[None] | None = None
        self._recordings: set[asyncio.Task[RecordOutcome]] = set()
        self._tick_listeners: list[TickListener] = []
        self._completion_listeners: list[CompletionListener] = []
        self._closed = False
        self.last_outcome: RecordOutcome | None = None

    @property
    def state(self) -> TimerState:
        return TimerState(
            phase=self._phase,
            status=self._status,
            seconds_remaining=self._seconds_remaining,
            seconds_total=self._seconds_total,
            preset_id=self._preset_id,
            awaiting_decision=self._awaiting_decision,
            sound_enabled=self._sound_enabled,
            started_at=self._started_at,
        )

    @property
    def preset(self) -> TimerPreset:
        return self.presets.get(self._preset_id)

    @property
    def ticking(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def on_tick(self, listener: TickListener) -> None:
        self._tick_listeners.append(listener)

    def on_phase_complete(self, listener: CompletionListener) -> None:
        self._completion_listeners.append(listener)

    def start(self) -> TimerState:
        if self._status is TimerStatus.RUNNING:
            return self.state
        if self._seconds_remaining <= 0:
            self._load_phase()
        self._awaiting_decision = False
        self._begin_running()
        return self.state

    def pause(self) -> TimerState:
        if self._status is not TimerStatus.RUNNING:
            return self.state
        self._stop_ticker()
        self._status = TimerStatus.PAUSED
        return self.state

    def tick(self) -> TimerState:
        if self._status is not TimerStatus.RUNNING:
            return self.state

        self._seconds_remaining = max(0, self._seconds_remaining - 1)
        if self._seconds_remaining > 0:
            self._emit_tick()
            return self.state

        self._complete_phase()
        return self.state

    def reset(self) -> TimerState:
        self._stop_ticker()
        self._load_phase()
        self._status = TimerStatus.PAUSED
        self._awaiting_decision = False
        return self.state

    def switch_preset(self, preset_id: str) -> TimerState:
        self._preset_id = self.presets.get(preset_id).id
        return self._reconfigure()

    def switch_phase(self, phase: Phase) -> TimerState:
        self._phase = Phase(phase)
        return self._reconfigure()

    def set_custom_durations(self, work_minutes: int, break_minutes: int) -> TimerState:
        self.presets.update_custom(work_minutes, break_minutes)
        self._preset_id = CUSTOM_PRESET_ID
        return self._reconfigure()

    def resolve_completion(self, continue_: bool) -> TimerState:
        """Leave the completion prompt; both answers start the timer again.

        ``True`` moves on to the other phase, ``False`` repeats the phase that
        just finished from its full duration.
        """
        if not self._awaiting_decision:
            raise TimerStateError("No finished phase is waiting for a decision")
        self._awaiting_decision = False
        if continue_:
            self._phase = self._phase.other
        self._load_phase()
        self._begin_running()
        return self.state

    @property
    def sound_enabled(self) -> bool:
        return self._sound_enabled

    def set_sound_enabled(self, enabled: bool) -> TimerState:
        self._sound_enabled = bool(enabled)
        return self.state

    def toggle_sound(self) -> TimerState:
        return self.set_sound_enabled(not self._sound_enabled)

    async def wait_for_recordings(self) -> list[RecordOutcome]:
        if not self._recordings:
            return []
        results = await asyncio.gather(*list(self._recordings), return_exceptions=True)
        return [r for r in results if isinstance(r, RecordOutcome)]

    def close(self) -> None:
        self._closed = True
        self._stop_ticker()
        if self._status is TimerStatus.RUNNING:
            self._status = TimerStatus.PAUSED

    def _reconfigure(self) -> TimerState:
        self._stop_ticker()
        self._load_phase()
        self._status = TimerStatus.IDLE
        self._awaiting_decision = False
        return self.state

    def _phase_seconds(self) -> int:
        return self.preset.seconds_for(self._phase)

    def _load_phase(self) -> None:
        self._seconds_total = self._phase_seconds()
        self._seconds_remaining = self._seconds_total
        self._started_at = None

    def _begin_running(self) -> None:
        self._status = TimerStatus.RUNNING
        self._started_at = self._clock()
        self._install_ticker()

    def _install_ticker(self) -> None:
        self._stop_ticker()
        loop = asyncio.get_running_loop()
        self._ticker = loop.create_task(self._run_ticker())

    def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None and not ticker.done():
            ticker.cancel()

    async def _run_ticker(self) -> None:
        while self._status is TimerStatus.RUNNING:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    def _complete_phase(self) -> None:
        self._stop_ticker()
        self._status = TimerStatus.PAUSED
        self._awaiting_decision = True
        self._started_at = None
        finished = self._phase

        recorded: int | None = None
        if finished is Phase.WORK:
            recorded = self._seconds_total // 60
            self._schedule_recording(recorded)

        if self._sound_enabled and self.sound is not None:
            try:
                self.sound.play()
            except Exception:
                logger.exception("Error playing notification sound")

        logger.info("phase complete phase=%s recorded_minutes=%s", finished.value, recorded)
        self._emit_tick()
        completion = PhaseCompletion(finished_phase=finished, next_phase=finished.other, recorded_minutes=recorded)
        for listener in list(self._completion_listeners):
            try:
                listener(completion)
            except Exception:
                logger.exception("Error in phase-complete listener")

    def _schedule_recording(self, minutes: int) -> None:
        if self.recorder is None:
            logger.info("no recorder configured, focus session of %s minutes not stored", minutes)
            return
        task = asyncio.get_running_loop().create_task(self.recorder.record(minutes))
        self._recordings.add(task)
        task.add_done_callback(self._recording_done)

    def _recording_done(self, task: asyncio.Task[RecordOutcome]) -> None:
        self._recordings.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("focus session recording crashed", exc_info=exc)
            return
        if self._closed:
            logger.info("timer closed, dropping recording outcome")
            return
        self.last_outcome = task.result()

    def _emit_tick(self) -> None:
        snapshot = self.state
        for listener in list(self._tick_listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Error in tick listener")
