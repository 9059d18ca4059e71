"""Core preparation and intermediate representation modules.

WHY: The core package is the pure heart of the synchronization engine —
the IR dataclasses and the functions that turn a raw roast into tokens,
cue points and a schedule. Both the HTTP API and the terminal player
consume it.

HOW: ir.py defines the data structures; markers.py, segmenter.py and
cues.py prepare the text; timing.py builds schedules; speech_text.py
prepares text for TTS; prompt.py builds the LLM request; pipeline.py
chains the stages.

RULES:
- No network or audio I/O in this package
- Randomness is always injectable (an optional random.Random argument)
"""
