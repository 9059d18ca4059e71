"""Ambient effect scheduler: random extra effects while a roast plays.

WHY: Cue points mark the punchlines, but long stretches between them feel
flat. A handful of random effects at irregular intervals keeps the show
going, as long as they never outlive the playback that started them.

HOW: A single asyncio TimerHandle is pending at any time. When it fires
it checks that playback is still playing, emits one effect through the
callback it was given, and schedules the next one after a random delay
in [min_interval_s, max_interval_s].

RULES:
- At most max_effects effects per playback (reset() starts a new count)
- An effect never repeats the tag of the previous ambient effect
- Only reads PlaybackState; effects are emitted through the callback
- stop() cancels the pending timer; nothing fires after it
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Optional

from roastmenow.config import (
    AMBIENT_MAX_EFFECTS,
    AMBIENT_MAX_INTERVAL_S,
    AMBIENT_MIN_INTERVAL_S,
    CUE_DISPLAY_S,
)
from roastmenow.core.ir import CueTag
from roastmenow.playback.state import EffectEvent, EffectOrigin, PlaybackState

logger = logging.getLogger(__name__)


class AmbientEffectScheduler:
    def __init__(
        self,
        state: PlaybackState,
        emit: Callable[[EffectEvent], None],
        rng: Optional[random.Random] = None,
        max_effects: int = AMBIENT_MAX_EFFECTS,
        min_interval_s: float = AMBIENT_MIN_INTERVAL_S,
        max_interval_s: float = AMBIENT_MAX_INTERVAL_S,
        display_s: float = CUE_DISPLAY_S,
    ) -> None:
        if min_interval_s > max_interval_s:
            raise ValueError("min_interval_s must not exceed max_interval_s")
        self._state = state
        self._emit = emit
        self._rng = rng or random.Random()
        self.max_effects = max_effects
        self.min_interval_s = min_interval_s
        self.max_interval_s = max_interval_s
        self.display_s = display_s
        self.count = 0
        self.previous: Optional[CueTag] = None
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """Schedule the next effect. Needs a running event loop."""
        if self._handle is not None or self.count >= self.max_effects:
            return
        if not self._state.is_playing:
            return
        loop = asyncio.get_running_loop()
        delay = self._rng.uniform(self.min_interval_s, self.max_interval_s)
        self._handle = loop.call_later(delay, self._fire)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def reset(self) -> None:
        self.stop()
        self.count = 0
        self.previous = None

    def _choose(self) -> CueTag:
        choices = [tag for tag in CueTag if tag is not self.previous]
        return self._rng.choice(choices)

    def _fire(self) -> None:
        self._handle = None
        if not self._state.is_playing or self.count >= self.max_effects:
            return
        tag = self._choose()
        self.previous = tag
        self.count += 1
        logger.debug("Ambient effect %d/%d: %s", self.count, self.max_effects, tag.value)
        self._emit(EffectEvent(
            cue_tag=tag,
            fired_at_token_index=self._state.current_token_index,
            origin=EffectOrigin.AMBIENT,
            display_s=self.display_s,
        ))
        self.start()
