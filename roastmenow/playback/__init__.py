"""Playback engine: state machine, ambient effects, and audio sources.

WHY: Once a roast has a timeline, something has to follow the audio
clock, highlight words, fire cues exactly once, and clean up every timer
when the user pauses, leaves, or starts another roast.

HOW: scheduler.py holds the PlaybackScheduler state machine, ambient.py
the random ambient effect timer, state.py the shared PlaybackState record
and EffectEvent, sources.py the clocks and external-player backends.

RULES:
- Only PlaybackScheduler mutates PlaybackState
- Everything runs on one asyncio event loop; no threads
"""

from roastmenow.playback.ambient import AmbientEffectScheduler
from roastmenow.playback.scheduler import PlaybackScheduler
from roastmenow.playback.sources import ClockPlaybackSource, ProcessPlaybackSource
from roastmenow.playback.state import EffectEvent, EffectOrigin, PlaybackState, PlaybackStatus

__all__ = [
    "AmbientEffectScheduler",
    "ClockPlaybackSource",
    "EffectEvent",
    "EffectOrigin",
    "PlaybackScheduler",
    "PlaybackState",
    "PlaybackStatus",
    "ProcessPlaybackSource",
]
