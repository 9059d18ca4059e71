"""Playback sources: where the scheduler's elapsed time comes from.

WHY: The scheduler only needs a position and a "finished" flag. Whether
that comes from an MP3 playing through ffplay, a `say` process speaking
the fallback text, or a virtual clock when no audio device exists should
not matter to it.

HOW: ClockPlaybackSource is a pausable clock capped at the duration.
ProcessPlaybackSource runs an external command, pauses it with SIGSTOP /
SIGCONT, and reports position from the same kind of clock (external
players do not report their position). audio_player_command() and
speech_command() pick the first installed command for the job.

RULES:
- position_s is always within [0, duration_s]
- stop() is idempotent and never raises
- A launch failure, or a process exiting non-zero before stop(), raises
  PlaybackError
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import time
from typing import Callable, List, Optional, Protocol

from roastmenow.config import resolve_intensity
from roastmenow.errors import PlaybackError

logger = logging.getLogger(__name__)

# Average characters per spoken word, for converting ms_per_char to words/min
_CHARS_PER_WORD = 6


class PlaybackSource(Protocol):
    duration_s: float

    @property
    def position_s(self) -> float: ...

    @property
    def finished(self) -> bool: ...

    def start(self) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def seek(self, position_s: float) -> None: ...

    def stop(self) -> None: ...


class ClockPlaybackSource:
    """A virtual playback clock.

    Used for silent playback (no audio device) and as the fake clock in
    tests, where *clock* is replaced by a controllable callable.
    """

    def __init__(self, duration_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        if duration_s < 0:
            raise ValueError("duration_s must not be negative")
        self.duration_s = duration_s
        self._clock = clock
        self._offset = 0.0
        self._started_at: Optional[float] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._started_at is not None

    @property
    def position_s(self) -> float:
        position = self._offset
        if self._started_at is not None:
            position += self._clock() - self._started_at
        return max(0.0, min(position, self.duration_s))

    @property
    def finished(self) -> bool:
        return self._stopped or self.position_s >= self.duration_s

    def start(self) -> None:
        self._offset = 0.0
        self._stopped = False
        self._started_at = self._clock()

    def pause(self) -> None:
        if self._started_at is None:
            return
        self._offset = self.position_s
        self._started_at = None

    def resume(self) -> None:
        if self._started_at is None and not self._stopped:
            self._started_at = self._clock()

    def seek(self, position_s: float) -> None:
        self._offset = max(0.0, min(position_s, self.duration_s))
        if self._started_at is not None:
            self._started_at = self._clock()

    def stop(self) -> None:
        self.pause()
        self._stopped = True


class ProcessPlaybackSource:
    """Plays through an external command (audio player or speech engine).

    RULES:
    - cleanup_path, when given, is deleted on stop() (temporary MP3 files)
    - seek() is not supported by external players and raises PlaybackError
    """

    def __init__(
        self,
        argv: List[str],
        duration_s: float,
        cleanup_path: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.argv = list(argv)
        self.duration_s = duration_s
        self._cleanup_path = cleanup_path
        self._clock = ClockPlaybackSource(duration_s, clock=clock)
        self._process: Optional[subprocess.Popen] = None
        self._stopped = False

    @property
    def position_s(self) -> float:
        return self._clock.position_s

    @property
    def finished(self) -> bool:
        if self._stopped:
            return True
        if self._process is None:
            return False
        returncode = self._process.poll()
        if returncode is None:
            return False
        if returncode != 0:
            raise PlaybackError(
                "{} exited with status {}".format(os.path.basename(self.argv[0]), returncode)
            )
        return True

    def start(self) -> None:
        logger.debug("Starting playback command: %s", self.argv[0])
        try:
            self._process = subprocess.Popen(
                self.argv,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise PlaybackError("Could not start {}: {}".format(self.argv[0], exc)) from exc
        self._clock.start()

    def _signal(self, signum: int) -> None:
        if self._process is None or self._process.poll() is not None:
            return
        try:
            self._process.send_signal(signum)
        except ProcessLookupError:
            pass

    def pause(self) -> None:
        self._signal(signal.SIGSTOP)
        self._clock.pause()

    def resume(self) -> None:
        self._signal(signal.SIGCONT)
        self._clock.resume()

    def seek(self, position_s: float) -> None:
        raise PlaybackError("Seeking is not supported while playing through an external command")

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._clock.stop()
        if self._process is not None and self._process.poll() is None:
            # A stopped process ignores SIGTERM until it is continued
            self._signal(signal.SIGCONT)
            self._process.terminate()
            try:
                self._process.wait(timeout=1.0)
            except subprocess.TimeoutExpired:
                self._process.kill()
                self._process.wait()
        if self._cleanup_path:
            try:
                os.unlink(self._cleanup_path)
            except FileNotFoundError:
                pass


# ---------------------------------------------------------------------------
# Command discovery
# ---------------------------------------------------------------------------


def audio_player_command(path: str) -> Optional[List[str]]:
    """Command line for playing the MP3 at *path*, or None if no player is installed."""
    candidates = [
        (["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", path], "ffplay"),
        (["afplay", path], "afplay"),
        (["mpg123", "-q", path], "mpg123"),
    ]
    for argv, binary in candidates:
        if shutil.which(binary):
            return argv
    return None


def speech_command(text: str, intensity: str | None = None) -> Optional[List[str]]:
    """Command line for speaking *text* on the device, or None if no engine is installed.

    The speaking rate follows the intensity's ms_per_char so the spoken
    duration roughly matches the estimate the schedule was built from.
    """
    ms_per_char = resolve_intensity(intensity).ms_per_char
    words_per_minute = int(round(60000.0 / (ms_per_char * _CHARS_PER_WORD)))
    if shutil.which("say"):
        return ["say", "-r", str(words_per_minute), text]
    if shutil.which("espeak"):
        return ["espeak", "-s", str(words_per_minute), text]
    return None
