"""Command-line roast player.

WHY: The quickest way to get roasted is from the terminal. The CLI runs
the whole pipeline locally (GitHub fetch, roast generation, speech) and
then plays it back with word-by-word text, sound-effect callouts and the
finale, using the same playback scheduler a browser front end mirrors.

HOW: Uses argparse for the username and options and runs the async
pipeline via asyncio.run(). Speech plays through an installed audio
player (MP3) or speech engine (fallback); with neither, a silent clock
drives playback. A TerminalRenderer prints each word as the scheduler
reaches it and prints effect callouts as they fire.

RULES:
- Positional argument: GitHub username (a leading "@" is accepted)
- Status output goes to stderr; the roast itself goes to stdout
- Exit codes: 0 success, 1 roast or playback error, 2 invalid username,
  130 when cancelled with Ctrl-C
- Every timer is cancelled and any player process stopped on exit
- Python 3.9 compatible: no match/case
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import random
import sys
import tempfile
from typing import List, Optional, TextIO, Tuple, Union

from roastmenow.api.github import GitHubClient, validate_username
from roastmenow.api.llm import RoastGenerator
from roastmenow.api.models import SpeechAudio, SpeechFallback
from roastmenow.api.speech import SpeechClient, acquire_speech
from roastmenow.config import DEFAULT_INTENSITY, INTENSITIES, SPRINKLE_MARKERS
from roastmenow.core.ir import Token
from roastmenow.core.markers import sprinkle_markers
from roastmenow.core.pipeline import build_timeline, prepare_roast
from roastmenow.errors import GenerationFailed, InvalidUsername, RoastError
from roastmenow.playback.scheduler import PlaybackScheduler
from roastmenow.playback.sources import (
    ClockPlaybackSource,
    PlaybackSource,
    ProcessPlaybackSource,
    audio_player_command,
    speech_command,
)
from roastmenow.playback.state import EffectEvent, EffectOrigin, PlaybackStatus

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr (stdout carries the roast)."""
    print(msg, file=sys.stderr, flush=True)


# ---------------------------------------------------------------------------
# Terminal rendering
# ---------------------------------------------------------------------------


class TerminalRenderer:
    """Prints the roast word by word and calls out effects as they fire.

    RULES:
    - Each token is printed exactly once, in order
    - An effect is printed after the word it fired on
    - stream defaults to sys.stdout as it is when the renderer is created
    """

    def __init__(self, tokens: List[Token], stream: Optional[TextIO] = None) -> None:
        self.tokens = tokens
        self.stream = stream if stream is not None else sys.stdout
        self.printed = -1

    def advance(self, index: int) -> None:
        index = min(index, len(self.tokens) - 1)
        while self.printed < index:
            self.printed += 1
            token = self.tokens[self.printed]
            if token.is_break:
                self.stream.write("\n\n")
            else:
                self.stream.write(token.text + " ")
        self.stream.flush()

    def on_effect(self, event: EffectEvent) -> None:
        self.advance(event.fired_at_token_index)
        if event.origin is EffectOrigin.FINALE:
            self.stream.write("\n\n*** ROASTED ***\n")
        elif event.origin is EffectOrigin.AMBIENT:
            self.stream.write("(~{}~) ".format(event.cue_tag.value))
        else:
            self.stream.write("<<{}!>> ".format(event.cue_tag.value))
        self.stream.flush()

    async def follow(self, scheduler: PlaybackScheduler) -> None:
        """Print words as the scheduler reaches them, until cancelled."""
        while True:
            self.advance(scheduler.state.current_token_index)
            await asyncio.sleep(scheduler.poll_interval_s)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def _make_source(
    speech: Union[SpeechAudio, SpeechFallback],
    intensity: str,
) -> PlaybackSource:
    """Pick how to play *speech* on this machine.

    RULES:
    - MP3 audio is written to a temporary file deleted when playback stops
    - With no suitable command installed, playback is silent but timed
    """
    if isinstance(speech, SpeechAudio):
        fd, path = tempfile.mkstemp(suffix=".mp3", prefix="roastmenow-")
        with os.fdopen(fd, "wb") as f:
            f.write(speech.audio)
        argv = audio_player_command(path)
        if argv:
            return ProcessPlaybackSource(argv, speech.duration_s, cleanup_path=path)
        os.unlink(path)
        _status("No audio player found (ffplay, afplay or mpg123); playing silently.")
        return ClockPlaybackSource(speech.duration_s)

    argv = speech_command(speech.text, intensity)
    if argv:
        return ProcessPlaybackSource(argv, speech.duration_s)
    _status("No speech engine found (say or espeak); playing silently.")
    return ClockPlaybackSource(speech.duration_s)


async def _acquire(text: str, intensity: str, use_speech: bool) -> Union[SpeechAudio, SpeechFallback]:
    client: Optional[SpeechClient] = None
    if use_speech:
        try:
            client = SpeechClient()
        except ValueError as exc:
            _status("Remote voice not configured: {}".format(exc))

    if client is None:
        return await acquire_speech(text, intensity, None)
    async with client:
        return await acquire_speech(text, intensity, client)


async def _play(
    scheduler: PlaybackScheduler,
    renderer: TerminalRenderer,
    source: PlaybackSource,
) -> Tuple[PlaybackStatus, Optional[str]]:
    """Run playback to the end; returns the final status and any error detail."""
    follower = asyncio.create_task(renderer.follow(scheduler))
    try:
        status = await scheduler.run(source)
        error = scheduler.state.error
        if status is PlaybackStatus.ENDED:
            # Let the finale overlay run its course
            await asyncio.sleep(scheduler.finale_display_s)
        return status, error
    finally:
        follower.cancel()
        scheduler.close()


async def _run_pipeline(args: argparse.Namespace, username: str) -> int:
    """Fetch, generate, prepare, speak and play one roast.

    RULES:
    - Markers are resolved before speech is requested (speech gets CleanText)
    - The schedule is built only once a duration (real or estimated) exists
    """
    intensity = args.intensity
    rng = random.Random(args.seed) if args.seed is not None else random.Random()

    _status("Fetching GitHub profile for @{}...".format(username))
    async with GitHubClient() as github:
        profile = await github.fetch_profile(username)
    _status("  {} public repos, {} recent events".format(
        profile.user.public_repos, len(profile.events)))

    _status("Generating {} roast...".format(intensity))
    async with RoastGenerator() as generator:
        roast = await generator.generate(profile, intensity)
    if SPRINKLE_MARKERS:
        roast = sprinkle_markers(roast, rng)

    prepared = prepare_roast(roast, rng=rng)
    if not prepared.tokens:
        raise GenerationFailed("The generated roast has no words")
    _status("  {} words, {} cues ({})".format(
        sum(1 for t in prepared.tokens if not t.is_break),
        len(prepared.cues),
        prepared.cue_source,
    ))

    _status("Preparing speech...")
    speech = await _acquire(prepared.clean_text, intensity, not args.no_speech)
    if isinstance(speech, SpeechFallback):
        _status("  Using on-device speech ({}), about {:.1f}s".format(speech.reason, speech.duration_s))
    else:
        _status("  Voice ready, {:.1f}s".format(speech.duration_s))

    timeline = build_timeline(prepared, speech.duration_s, spoken_text=speech.text)
    source = _make_source(speech, intensity)

    scheduler = PlaybackScheduler(ambient=not args.no_ambient, rng=rng)
    renderer = TerminalRenderer(prepared.tokens)
    scheduler.subscribe(renderer.on_effect)
    scheduler.load()
    scheduler.start(timeline)

    _status("")
    status, error = await _play(scheduler, renderer, source)
    print("", flush=True)

    if status is PlaybackStatus.FAILED:
        _status("Playback error: {}".format(error))
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    RULES:
    - Positional: username (required)
    - Optional: --intensity, --no-speech, --no-ambient, --seed, --verbose
    """
    parser = argparse.ArgumentParser(
        prog="roastmenow",
        description="Roast a GitHub profile and play it back with "
                    "word-synchronized text and sound-effect cues.",
    )

    parser.add_argument(
        "username",
        help="GitHub username to roast.",
    )

    parser.add_argument(
        "--intensity",
        choices=INTENSITIES,
        default=DEFAULT_INTENSITY,
        help="How harsh the roast should be (default: %(default)s).",
    )

    parser.add_argument(
        "--no-speech",
        action="store_true",
        help="Skip remote speech synthesis and use on-device speech.",
    )

    parser.add_argument(
        "--no-ambient",
        action="store_true",
        help="Disable random ambient sound effects.",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for cue placement and ambient effects (reproducible runs).",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log requests and state transitions to stderr.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    - Returns the process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        username = validate_username(args.username)
    except InvalidUsername as exc:
        print("Error: {}".format(exc.detail), file=sys.stderr)
        return 2

    try:
        return asyncio.run(_run_pipeline(args, username))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        return 130
    except RoastError as exc:
        print("Error: {}".format(exc.detail), file=sys.stderr)
        return 1
    except ValueError as exc:
        # Config errors (missing API key)
        print("Error: {}".format(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
