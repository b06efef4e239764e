"""FFmpeg process supervision.

One supervisor runs one FFmpeg process as an explicit state machine::

    spawned -> running -> completed | rendering_failed -> cleaned_up
    spawned -> spawn_failed -> cleaned_up

The machine is driven by structured events (``StderrChunk``,
``ProcessExited``, ``SpawnFailed``). Reaching any terminal outcome runs the
cleanup callback exactly once; cleanup errors are logged and swallowed.
Progress is parsed from the ``time=HH:MM:SS.xx`` tokens FFmpeg writes to
stderr.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from reelforge.exceptions import EngineUnavailableError, RenderFailedError

logger = logging.getLogger(__name__)

PROGRESS_RE = re.compile(r"time=(\d+):(\d+):(\d+(?:\.\d+)?)")
_LINE_BREAK_RE = re.compile(r"[\r\n]")
STDERR_READ_SIZE = 4096


class SupervisorState(str, Enum):
    SPAWNED = "spawned"
    RUNNING = "running"
    COMPLETED = "completed"
    SPAWN_FAILED = "spawn_failed"
    RENDERING_FAILED = "rendering_failed"
    CLEANED_UP = "cleaned_up"


OUTCOMES = frozenset(
    {SupervisorState.COMPLETED, SupervisorState.SPAWN_FAILED, SupervisorState.RENDERING_FAILED}
)

_TRANSITIONS: dict[SupervisorState, frozenset[SupervisorState]] = {
    SupervisorState.SPAWNED: frozenset({SupervisorState.RUNNING, SupervisorState.SPAWN_FAILED}),
    SupervisorState.RUNNING: frozenset({SupervisorState.COMPLETED, SupervisorState.RENDERING_FAILED}),
    SupervisorState.COMPLETED: frozenset({SupervisorState.CLEANED_UP}),
    SupervisorState.SPAWN_FAILED: frozenset({SupervisorState.CLEANED_UP}),
    SupervisorState.RENDERING_FAILED: frozenset({SupervisorState.CLEANED_UP}),
    SupervisorState.CLEANED_UP: frozenset(),
}


@dataclass(frozen=True)
class StderrChunk:
    text: str


@dataclass(frozen=True)
class ProcessExited:
    returncode: int


@dataclass(frozen=True)
class SpawnFailed:
    reason: str


SupervisorEvent = StderrChunk | ProcessExited | SpawnFailed


def parse_timestamp(text: str) -> float | None:
    """Seconds for the last ``time=HH:MM:SS.xx`` token in ``text``."""
    matches = PROGRESS_RE.findall(text)
    if not matches:
        return None
    hours, minutes, seconds = matches[-1]
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class ProgressTracker:
    """Turns stderr text into percentages that only ever go up.

    Text is buffered up to the last line break so a token split across two
    reads is still parsed once complete.
    """

    def __init__(self, total_duration: float, on_progress: Callable[[float], None] | None = None):
        self.total_duration = total_duration
        self.on_progress = on_progress
        self.last_percent = 0.0
        self.updates: list[float] = []
        self._pending = ""

    def feed(self, text: str) -> list[float]:
        lines = _LINE_BREAK_RE.split(self._pending + text)
        self._pending = lines.pop()
        return self._consume(lines)

    def flush(self) -> list[float]:
        pending, self._pending = self._pending, ""
        return self._consume([pending])

    def _consume(self, lines: list[str]) -> list[float]:
        emitted = []
        for line in lines:
            seconds = parse_timestamp(line)
            if seconds is None or self.total_duration <= 0:
                continue
            percent = max(0.0, min(100.0, seconds / self.total_duration * 100))
            if percent > self.last_percent:
                self.last_percent = percent
                emitted.append(percent)
                if self.on_progress:
                    self.on_progress(percent)
        self.updates.extend(emitted)
        return emitted


@dataclass
class SupervisorResult:
    outcome: SupervisorState
    returncode: int | None = None
    diagnostic_tail: str = ""
    spawn_error: str | None = None
    progress: list[float] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome is SupervisorState.COMPLETED

    def raise_for_outcome(self) -> None:
        """Raise the API error matching a failed outcome."""
        if self.outcome is SupervisorState.SPAWN_FAILED:
            raise EngineUnavailableError(details=self.spawn_error)
        if self.outcome is SupervisorState.RENDERING_FAILED:
            raise RenderFailedError(self.returncode, details=self.diagnostic_tail or None)


class ProcessSupervisor:
    """Runs one FFmpeg command and reports its outcome."""

    def __init__(
        self,
        cmd: list[str],
        total_duration: float,
        cleanup: Callable[[], None] | None = None,
        tail_chars: int = 1000,
        buffer_chars: int = 64_000,
        on_progress: Callable[[float], None] | None = None,
    ):
        self.cmd = cmd
        self.cleanup = cleanup
        self.tail_chars = tail_chars
        self.buffer_chars = max(buffer_chars, tail_chars)
        self.progress = ProgressTracker(total_duration, on_progress)
        self.state = SupervisorState.SPAWNED
        self.history: list[SupervisorState] = [SupervisorState.SPAWNED]
        self.outcome: SupervisorState | None = None
        self.returncode: int | None = None
        self.spawn_error: str | None = None
        self._stderr = ""

    @property
    def diagnostics(self) -> str:
        return self._stderr

    def _transition(self, new_state: SupervisorState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal supervisor transition {self.state.value} -> {new_state.value}")
        logger.debug(f"[SUPERVISOR] {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)
        if new_state in OUTCOMES:
            self.outcome = new_state
            self._run_cleanup()

    def _run_cleanup(self) -> None:
        if self.cleanup is not None:
            try:
                self.cleanup()
            except Exception as e:
                logger.warning(f"[SUPERVISOR] Cleanup failed: {e}")
        self._transition(SupervisorState.CLEANED_UP)

    def started(self) -> None:
        self._transition(SupervisorState.RUNNING)

    def handle(self, event: SupervisorEvent) -> None:
        """Apply one event to the state machine."""
        if isinstance(event, StderrChunk):
            if self.state is not SupervisorState.RUNNING:
                raise RuntimeError(f"stderr received while {self.state.value}")
            self._stderr = (self._stderr + event.text)[-self.buffer_chars :]
            for percent in self.progress.feed(event.text):
                logger.info(f"[SUPERVISOR] Progress: {percent:.1f}%")
        elif isinstance(event, ProcessExited):
            self.progress.flush()
            self.returncode = event.returncode
            if event.returncode == 0:
                self._transition(SupervisorState.COMPLETED)
            else:
                logger.error(f"[SUPERVISOR] FFmpeg exited with code {event.returncode}")
                logger.error(f"[SUPERVISOR] FFmpeg stderr (tail): {self.diagnostic_tail()}")
                self._transition(SupervisorState.RENDERING_FAILED)
        elif isinstance(event, SpawnFailed):
            logger.error(f"[SUPERVISOR] Could not start FFmpeg: {event.reason}")
            self.spawn_error = event.reason
            self._transition(SupervisorState.SPAWN_FAILED)

    def diagnostic_tail(self) -> str:
        return self._stderr[-self.tail_chars :] if self.tail_chars > 0 else ""

    def result(self) -> SupervisorResult:
        if self.outcome is None:
            raise RuntimeError("Supervisor has not reached an outcome yet")
        return SupervisorResult(
            outcome=self.outcome,
            returncode=self.returncode,
            diagnostic_tail=self.diagnostic_tail(),
            spawn_error=self.spawn_error,
            progress=list(self.progress.updates),
        )

    async def run(self) -> SupervisorResult:
        """Spawn FFmpeg, stream its stderr through the machine and wait for exit."""
        logger.info(f"[SUPERVISOR] Spawning: {' '.join(self.cmd[:1])} ({len(self.cmd)} args)")
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self.handle(SpawnFailed(f"{type(e).__name__}: {e}"))
            return self.result()

        self.started()
        try:
            while True:
                chunk = await proc.stderr.read(STDERR_READ_SIZE)
                if not chunk:
                    break
                self.handle(StderrChunk(chunk.decode("utf-8", errors="replace")))
            returncode = await proc.wait()
        except BaseException:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise
        self.handle(ProcessExited(returncode))
        return self.result()
