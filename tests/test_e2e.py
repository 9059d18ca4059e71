"""End-to-end tests: roast text in, synchronized playback out.

WHY: The individual stages are tested in isolation elsewhere. These tests
run the whole chain the way a player does: prepare the roast, acquire
speech (remote or fallback), build the timeline, and play it against a
clock, checking what the user would actually see and hear.

HOW: Speech goes through acquire_speech() with a MockTransport client (or
none, for the fallback). Playback uses ClockPlaybackSource driven by a
clock that advances on every read, so run() finishes without sleeping.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from roastmenow.api.models import SpeechAudio, SpeechFallback
from roastmenow.api.speech import SpeechClient, acquire_speech
from roastmenow.core.ir import CueTag
from roastmenow.core.pipeline import build_timeline, prepare_roast
from roastmenow.playback.scheduler import PlaybackScheduler
from roastmenow.playback.sources import ClockPlaybackSource
from roastmenow.playback.state import EffectOrigin, PlaybackStatus


class SteppingClock:
    def __init__(self, step):
        self.now = 0.0
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


def _speak(text, intensity, response=None):
    async def _run():
        if response is None:
            return await acquire_speech(text, intensity, None)
        transport = httpx.MockTransport(lambda r: response)
        async with SpeechClient(api_key="xi-test", transport=transport) as client:
            return await acquire_speech(text, intensity, client)

    return asyncio.run(_run())


def _play(timeline, step=0.1):
    scheduler = PlaybackScheduler(ambient=False, poll_interval_s=0)
    events = []
    highlighted = []
    scheduler.subscribe(events.append)
    scheduler.load()
    scheduler.start(timeline)
    assert scheduler.state.status is PlaybackStatus.PLAYING

    original_tick = scheduler.tick

    def tick(elapsed_s):
        fired = original_tick(elapsed_s)
        index = scheduler.state.current_token_index
        if not highlighted or highlighted[-1] != index:
            highlighted.append(index)
        return fired

    scheduler.tick = tick
    source = ClockPlaybackSource(timeline.duration_s, clock=SteppingClock(step))
    status = asyncio.run(scheduler.run(source))
    return scheduler, status, events, highlighted


class TestReferenceRoast:
    def test_spicy_with_fallback_speech(self, reference_roast, reference_clean):
        prepared = prepare_roast(reference_roast)
        speech = _speak(prepared.clean_text, "spicy")

        assert isinstance(speech, SpeechFallback)
        assert speech.text == reference_clean
        assert speech.duration_s == pytest.approx(len(reference_clean) * 0.058)

        timeline = build_timeline(prepared, speech.duration_s)
        scheduler, status, events, highlighted = _play(timeline)

        assert status is PlaybackStatus.ENDED
        assert [(e.origin, e.cue_tag, e.fired_at_token_index) for e in events] == [
            (EffectOrigin.CUE, CueTag.AIRHORN, 2),
            (EffectOrigin.CUE, CueTag.FATALITY, 10),
            (EffectOrigin.FINALE, None, 10),
        ]
        assert highlighted == sorted(highlighted)
        assert highlighted[-1] == 10
        assert scheduler.state.progress_fraction == 1.0

    def test_with_remote_audio(self, reference_roast):
        prepared = prepare_roast(reference_roast)
        speech = _speak(
            prepared.clean_text, "no_mercy",
            httpx.Response(200, content=b"\xff\xfb" * 24000, headers={"content-type": "audio/mpeg"}),
        )

        assert isinstance(speech, SpeechAudio)
        assert speech.duration_s == pytest.approx(3.0)

        timeline = build_timeline(prepared, speech.duration_s)
        assert timeline.schedule[-1] == pytest.approx(3.0)
        _, status, events, _ = _play(timeline)
        assert status is PlaybackStatus.ENDED
        assert [e.cue_tag for e in events[:2]] == [CueTag.AIRHORN, CueTag.FATALITY]

    def test_quota_exhausted_still_plays(self, reference_roast):
        prepared = prepare_roast(reference_roast)
        speech = _speak(prepared.clean_text, "medium", httpx.Response(429))

        assert isinstance(speech, SpeechFallback)
        assert speech.reason == "speech_quota"
        assert speech.duration_s > 0

        _, status, events, _ = _play(build_timeline(prepared, speech.duration_s))
        assert status is PlaybackStatus.ENDED
        assert events[-1].origin is EffectOrigin.FINALE


class TestHeuristicRoast:
    def test_unmarked_roast_plays(self, rng):
        text = (
            "Your repos are abandoned. Everything is broken.\n\n"
            "Seriously, why would you do that? Nobody stars this."
        )
        prepared = prepare_roast(text, rng=rng)
        assert prepared.cue_source == "heuristic"
        assert any(t.is_break for t in prepared.tokens)

        speech = _speak(prepared.clean_text, "mild")
        timeline = build_timeline(prepared, speech.duration_s)
        _, status, events, _ = _play(timeline, step=0.25)

        assert status is PlaybackStatus.ENDED
        cue_events = [e for e in events if e.origin is EffectOrigin.CUE]
        assert [e.fired_at_token_index for e in cue_events] == [c.token_index for c in prepared.cues]
        assert all(not prepared.tokens[e.fired_at_token_index].is_break for e in cue_events)
