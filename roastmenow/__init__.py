"""RoastMeNow — GitHub profile roasts with word-synchronized playback.

WHY: A roast is only funny if it lands on time. The generated text carries
sound-effect cues, the speech has to match the words on screen, and the
meme sounds have to hit on the right word. This package turns a GitHub
username into a roast, a speech track and a per-word timeline, then plays
them back in sync.

HOW: Three-stage pipeline — collect (GitHub, LLM and speech API clients),
prepare (marker extraction, segmentation, cue location, timing), play
(playback scheduler and ambient effect scheduler on an asyncio loop).
Each stage is independently testable.

RULES:
- External services are only reached through the clients in ``api``
- The ``core`` modules are pure functions over plain dataclasses
- ``PlaybackState`` is owned by the playback scheduler; everyone else reads
"""

__version__ = "0.1.0"
