"""Playback state record and effect events.

WHY: The highlighter, the overlay renderer and the ambient effect timer
all need to read the same playback facts (which word, which effect, is it
playing). Keeping them in one record owned by the scheduler avoids
scattered flags that disagree with each other.

HOW: PlaybackState is a plain mutable dataclass. Only PlaybackScheduler
writes to it; everything else holds a reference and reads. EffectEvent is
what subscribers receive when a cue, an ambient effect or the finale
fires.

RULES:
- current_token_index is -1 until the first token is reached
- last_fired_cue_token_index (the watermark) only moves forward, except on
  replay or a new load
- progress_fraction stays within [0, 1]
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from roastmenow.core.ir import CueTag


class PlaybackStatus(str, enum.Enum):
    """Lifecycle of one roast's playback."""

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    FAILED = "failed"


class EffectOrigin(str, enum.Enum):
    CUE = "cue"
    AMBIENT = "ambient"
    FINALE = "finale"


@dataclass(frozen=True)
class EffectEvent:
    """A sound/visual effect to render.

    RULES:
    - cue_tag is None only for the finale effect
    - display_s is how long the overlay stays visible
    """

    cue_tag: Optional[CueTag]
    fired_at_token_index: int
    origin: EffectOrigin
    display_s: float


@dataclass
class PlaybackState:
    status: PlaybackStatus = PlaybackStatus.IDLE
    current_token_index: int = -1
    last_fired_cue_token_index: int = -1
    progress_fraction: float = 0.0
    active_effect: Optional[EffectEvent] = None
    error: Optional[str] = None

    @property
    def is_playing(self) -> bool:
        return self.status is PlaybackStatus.PLAYING

    def reset(self, status: PlaybackStatus) -> None:
        """Return to the start of a roast in *status*."""
        self.status = status
        self.current_token_index = -1
        self.last_fired_cue_token_index = -1
        self.progress_fraction = 0.0
        self.active_effect = None
        self.error = None
