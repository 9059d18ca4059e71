"""Tests for roast preparation and timeline building."""

from __future__ import annotations

import pytest

from roastmenow.core.ir import CuePoint, CueTag
from roastmenow.core.pipeline import build_timeline, prepare_roast
from roastmenow.core.speech_text import optimize_text_for_speech


class TestPrepareRoast:
    def test_reference_roast(self, reference_roast, reference_clean):
        prepared = prepare_roast(reference_roast)
        assert prepared.roast_text == reference_roast
        assert prepared.clean_text == reference_clean
        assert len(prepared.tokens) == 11
        assert [m.tag for m in prepared.markers] == [CueTag.AIRHORN, CueTag.FATALITY]
        assert prepared.cues == [CuePoint(2, CueTag.AIRHORN), CuePoint(10, CueTag.FATALITY)]
        assert prepared.cue_source == "markers"
        assert prepared.cue_at(2) is CueTag.AIRHORN
        assert prepared.cue_at(3) is None

    def test_no_markers_uses_heuristic(self, reference_clean, rng):
        prepared = prepare_roast(reference_clean, rng=rng)
        assert prepared.cue_source == "heuristic"
        assert prepared.markers == []
        # one candidate ("typos.") halves down to zero kept cues
        assert prepared.cues == []

    def test_heuristic_keeps_half(self, rng):
        text = (
            "Your repos are abandoned. Everything is broken. "
            "Seriously, why would you do that? Nobody stars this."
        )
        prepared = prepare_roast(text, rng=rng)
        assert prepared.cue_source == "heuristic"
        assert len(prepared.cues) == 2
        indices = [c.token_index for c in prepared.cues]
        assert indices == sorted(indices)
        assert all(prepared.tokens[i].ends_sentence for i in indices)

    def test_empty_text(self):
        prepared = prepare_roast("")
        assert prepared.tokens == []
        assert prepared.cues == []

    def test_markers_only(self):
        prepared = prepare_roast("[AIRHORN] [BRUH]")
        assert prepared.clean_text == ""
        assert prepared.tokens == []
        assert prepared.cues == []
        assert prepared.cue_source == "markers"


class TestBuildTimeline:
    def test_invariants(self, reference_roast):
        prepared = prepare_roast(reference_roast)
        timeline = build_timeline(prepared, 4.2)
        assert timeline.tokens == prepared.tokens
        assert timeline.cues == prepared.cues
        assert timeline.duration_s == 4.2
        assert len(timeline.schedule) == len(timeline.tokens)
        assert timeline.schedule[0] == 0.0
        assert timeline.schedule[-1] == pytest.approx(4.2)
        assert all(a <= b for a, b in zip(timeline.schedule, timeline.schedule[1:]))

    def test_copies_lists(self, reference_roast):
        prepared = prepare_roast(reference_roast)
        timeline = build_timeline(prepared, 1.0)
        timeline.cues.clear()
        assert len(prepared.cues) == 2

    def test_empty_roast_has_empty_schedule(self):
        assert build_timeline(prepare_roast(""), 3.0).schedule == []

    def test_words_past_speech_cap_wait_for_the_end(self):
        words = ["w{}".format(i) for i in range(200)]
        roast = "{} [AIRHORN] {}. [FATALITY]".format(" ".join(words[:100]), " ".join(words[100:]))
        prepared = prepare_roast(roast)
        spoken = optimize_text_for_speech(prepared.clean_text)
        assert len(spoken.split()) == 150

        timeline = build_timeline(prepared, 60.0, spoken_text=spoken)
        assert len(timeline.schedule) == len(prepared.tokens) == 200
        assert timeline.schedule[0] == 0.0
        assert timeline.schedule[149] == pytest.approx(60.0)
        assert timeline.schedule[150:] == [60.0] * 50
        assert all(a <= b for a, b in zip(timeline.schedule, timeline.schedule[1:]))
        assert timeline.schedule[99] < 50.0

        uncapped = build_timeline(prepared, 60.0)
        assert uncapped.schedule[149] < 50.0

    def test_spoken_text_covering_everything_changes_nothing(self, reference_roast):
        prepared = prepare_roast(reference_roast)
        assert (
            build_timeline(prepared, 4.2, spoken_text=prepared.clean_text).schedule
            == build_timeline(prepared, 4.2).schedule
        )
