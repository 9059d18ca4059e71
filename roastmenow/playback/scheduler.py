"""Playback scheduler: the state machine that keeps words and cues in sync.

WHY: Highlighting, cue firing, pausing, seeking and the end-of-roast
finale all depend on one question: where is playback right now? Answering
it in one place, from one entry point, is what keeps cues from firing
twice or firing against the wrong roast.

HOW: tick(elapsed_s) is the single poll-or-event entry point. It maps the
elapsed time onto the schedule (greatest i with schedule[i] <= elapsed),
updates PlaybackState and fires every cue between the watermark and the
current token. run(source) is the async loop that polls a PlaybackSource
every POLL_INTERVAL_S and ends or fails the playback when the source
does. Overlay expiry uses loop.call_later; every pending timer is tracked
and cancelled on any transition away from playing.

State transitions:
    Idle/Ended/Failed --load()--> Loading --start()--> Playing
    Playing --pause()--> Paused --resume()--> Playing
    Playing/Paused --end()--> Ended --replay()--> Loading
    any --fail()--> Failed            any --close()--> Idle

RULES:
- A cue fires at most once per playback: only cues with
  token_index > last_fired_cue_token_index fire, and the watermark never
  moves backwards except on load()/replay()
- Seeking re-derives the current token but never lowers the watermark; a
  forward seek skips the cues it jumps over
- start() refuses an empty schedule
- pause() clears the active overlay along with its expiry timer
- load(), close(), fail() and end() cancel the poll task (unless called
  from it), every overlay timer and the ambient scheduler
"""

from __future__ import annotations

import asyncio
import bisect
import logging
import random
from typing import Callable, Dict, List, Optional, Set

from roastmenow.config import CUE_DISPLAY_S, FINALE_DISPLAY_S, POLL_INTERVAL_S
from roastmenow.core.ir import CueTag, Timeline
from roastmenow.errors import PlaybackError
from roastmenow.playback.ambient import AmbientEffectScheduler
from roastmenow.playback.sources import PlaybackSource
from roastmenow.playback.state import EffectEvent, EffectOrigin, PlaybackState, PlaybackStatus

logger = logging.getLogger(__name__)

EffectCallback = Callable[[EffectEvent], None]


class PlaybackScheduler:
    """Owns PlaybackState and drives it from a Timeline and a clock.

    RULES:
    - Subscribers are called synchronously, in subscription order
    - ambient=False disables the ambient effect scheduler entirely
    - rng is shared with the ambient scheduler; pass a seeded one to
      reproduce a run
    """

    def __init__(
        self,
        poll_interval_s: float = POLL_INTERVAL_S,
        cue_display_s: float = CUE_DISPLAY_S,
        finale_display_s: float = FINALE_DISPLAY_S,
        ambient: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.poll_interval_s = poll_interval_s
        self.cue_display_s = cue_display_s
        self.finale_display_s = finale_display_s
        self.state = PlaybackState()
        self.timeline: Optional[Timeline] = None
        self._cues: Dict[int, CueTag] = {}
        self._cue_indices: List[int] = []
        self._subscribers: List[EffectCallback] = []
        self._timers: Set[asyncio.TimerHandle] = set()
        self._source: Optional[PlaybackSource] = None
        self._poll_task: Optional[asyncio.Task] = None
        self.ambient: Optional[AmbientEffectScheduler] = None
        if ambient:
            self.ambient = AmbientEffectScheduler(
                self.state, self._emit, rng=rng, display_s=cue_display_s,
            )

    # ------------------------------------------------------------------
    # Subscribers and timers
    # ------------------------------------------------------------------

    def subscribe(self, callback: EffectCallback) -> Callable[[], None]:
        """Register *callback* for effect events; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    @property
    def pending_timers(self) -> int:
        """Overlay timers plus the ambient timer still waiting to fire."""
        count = len(self._timers)
        if self.ambient is not None and self.ambient.pending:
            count += 1
        return count

    def _emit(self, event: EffectEvent) -> None:
        self.state.active_effect = event
        for callback in list(self._subscribers):
            callback(event)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        handle: Optional[asyncio.TimerHandle] = None

        def _expire() -> None:
            self._timers.discard(handle)
            if self.state.active_effect is event:
                self.state.active_effect = None

        handle = loop.call_later(event.display_s, _expire)
        self._timers.add(handle)

    def _cancel_timers(self) -> None:
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
        if self.ambient is not None:
            self.ambient.stop()

    def _cancel_poll(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    def _stop_source(self) -> None:
        if self._source is not None:
            self._source.stop()
            self._source = None

    def _teardown(self) -> None:
        self._cancel_poll()
        self._cancel_timers()
        self._stop_source()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def load(self) -> None:
        """A new roast is on its way: drop everything about the old one."""
        self._teardown()
        self.timeline = None
        self._cues = {}
        self._cue_indices = []
        if self.ambient is not None:
            self.ambient.reset()
        self.state.reset(PlaybackStatus.LOADING)
        logger.debug("Playback state: loading")

    def start(self, timeline: Optional[Timeline] = None) -> None:
        """Loading → Playing with *timeline* (or the one kept by replay())."""
        if self.state.status is not PlaybackStatus.LOADING:
            raise RuntimeError("start() requires the loading state, not {}".format(
                self.state.status.value))
        timeline = timeline or self.timeline
        if timeline is None or not timeline.schedule:
            raise ValueError("Cannot start playback without a non-empty schedule")

        self.timeline = timeline
        self._cues = {cue.token_index: cue.tag for cue in timeline.cues}
        self._cue_indices = sorted(self._cues)
        self.state.reset(PlaybackStatus.PLAYING)
        logger.debug("Playback state: playing (%d tokens)", len(timeline.tokens))
        self._start_ambient()

    def _start_ambient(self) -> None:
        if self.ambient is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.ambient.start()

    def pause(self) -> None:
        if self.state.status is not PlaybackStatus.PLAYING:
            return
        self.state.status = PlaybackStatus.PAUSED
        self._cancel_timers()
        # Overlay expiry was cancelled with the timers
        self.state.active_effect = None
        if self._source is not None:
            self._source.pause()
        logger.debug("Playback state: paused")

    def resume(self) -> None:
        if self.state.status is not PlaybackStatus.PAUSED:
            return
        if self._source is not None:
            self._source.resume()
        self.state.status = PlaybackStatus.PLAYING
        logger.debug("Playback state: playing (resumed)")
        self._start_ambient()

    def end(self) -> None:
        """The audio finished: show the finale and stop everything else."""
        if self.state.status not in (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED):
            return
        self._teardown()
        self.state.status = PlaybackStatus.ENDED
        self.state.progress_fraction = 1.0
        if self.timeline is not None and self.timeline.tokens:
            self.state.current_token_index = len(self.timeline.tokens) - 1
        logger.debug("Playback state: ended")
        self._emit(EffectEvent(
            cue_tag=None,
            fired_at_token_index=self.state.current_token_index,
            origin=EffectOrigin.FINALE,
            display_s=self.finale_display_s,
        ))

    def fail(self, detail: str) -> None:
        """Terminate playback after an unrecoverable audio error."""
        self._teardown()
        self.state.status = PlaybackStatus.FAILED
        self.state.error = detail
        self.state.active_effect = None
        logger.error("Playback failed: %s", detail)

    def replay(self) -> None:
        """Ended (or stopped) → Loading with the same timeline and a fresh watermark."""
        if self.timeline is None:
            raise RuntimeError("Nothing to replay")
        timeline = self.timeline
        self.load()
        self.timeline = timeline

    def close(self) -> None:
        """Navigating away: cancel everything and return to idle."""
        self._teardown()
        self.timeline = None
        self._cues = {}
        self._cue_indices = []
        if self.ambient is not None:
            self.ambient.reset()
        self.state.reset(PlaybackStatus.IDLE)
        logger.debug("Playback state: idle")

    # ------------------------------------------------------------------
    # Position tracking
    # ------------------------------------------------------------------

    def _index_at(self, elapsed_s: float) -> int:
        schedule = self.timeline.schedule
        index = bisect.bisect_right(schedule, elapsed_s) - 1
        return min(index, len(schedule) - 1)

    def _progress_at(self, elapsed_s: float) -> float:
        duration = self.timeline.duration_s
        if duration <= 0:
            return 1.0
        return max(0.0, min(elapsed_s / duration, 1.0))

    def tick(self, elapsed_s: float) -> List[EffectEvent]:
        """Advance to *elapsed_s* seconds and fire any cues reached.

        WHY: Polling and native position events both land here, so there
        is exactly one place where cues can fire.

        Returns:
            The cue events fired by this call, in token order.
        """
        if self.state.status is not PlaybackStatus.PLAYING or self.timeline is None:
            return []

        index = self._index_at(elapsed_s)
        self.state.current_token_index = index
        self.state.progress_fraction = self._progress_at(elapsed_s)

        watermark = self.state.last_fired_cue_token_index
        start = bisect.bisect_right(self._cue_indices, watermark)
        stop = bisect.bisect_right(self._cue_indices, index)

        fired: List[EffectEvent] = []
        for token_index in self._cue_indices[start:stop]:
            self.state.last_fired_cue_token_index = token_index
            event = EffectEvent(
                cue_tag=self._cues[token_index],
                fired_at_token_index=token_index,
                origin=EffectOrigin.CUE,
                display_s=self.cue_display_s,
            )
            logger.debug("Cue %s at token %d", event.cue_tag.value, token_index)
            self._emit(event)
            fired.append(event)
        return fired

    def seek(self, position_s: float) -> None:
        """Jump to *position_s* without replaying cues already behind the watermark.

        RULES:
        - Only valid while playing or paused
        - Backward: the watermark stays put, so passed cues stay silent
        - Forward: cues before the new token are skipped; a cue on the new
          token itself fires on the next tick
        - A source that cannot seek fails the playback (PlaybackError)
        """
        if self.state.status not in (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED):
            return
        if self._source is not None:
            try:
                self._source.seek(position_s)
            except PlaybackError as exc:
                self.fail(exc.detail)
                return

        index = self._index_at(position_s)
        self.state.current_token_index = index
        self.state.progress_fraction = self._progress_at(position_s)
        self.state.last_fired_cue_token_index = max(
            self.state.last_fired_cue_token_index, index - 1
        )

    # ------------------------------------------------------------------
    # Event loop driver
    # ------------------------------------------------------------------

    async def run(self, source: PlaybackSource) -> PlaybackStatus:
        """Play *source* to completion, polling every poll_interval_s.

        Call start() first. Returns the final status (ENDED, FAILED, or
        IDLE if close() was called from elsewhere).
        """
        if self.state.status is not PlaybackStatus.PLAYING:
            raise RuntimeError("run() requires the playing state; call start() first")

        self._source = source
        self._poll_task = asyncio.current_task()
        try:
            source.start()
            while self.state.status in (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED):
                if self.state.status is PlaybackStatus.PLAYING:
                    self.tick(source.position_s)
                if source.finished:
                    self.tick(source.position_s)
                    self.end()
                    break
                await asyncio.sleep(self.poll_interval_s)
        except PlaybackError as exc:
            self.fail(exc.detail)
        except asyncio.CancelledError:
            self._cancel_timers()
            self._stop_source()
            raise
        finally:
            if self._poll_task is asyncio.current_task():
                self._poll_task = None
        return self.state.status
