"""Tests for TTS text optimization and duration estimates."""

from __future__ import annotations

import pytest

from roastmenow.core.segmenter import segment_words
from roastmenow.core.speech_text import (
    estimate_mp3_duration,
    estimate_speech_duration,
    optimize_text_for_speech,
    spoken_token_count,
)


class TestOptimizeTextForSpeech:
    def test_removes_markdown(self):
        text = "**Bold** and *italic* with `code` here.\n```\nprint('x')\n```\nDone."
        assert optimize_text_for_speech(text) == "Bold and italic with code here.\n\nDone."

    def test_removes_filler_phrases(self):
        text = "To be honest, your code is bad. In my opinion, it is worse."
        assert optimize_text_for_speech(text) == "your code is bad. it is worse."

    def test_longest_filler_wins(self):
        text = "To be honest with you, nobody stars this."
        assert optimize_text_for_speech(text) == "nobody stars this."

    def test_filler_must_be_whole_words(self):
        assert optimize_text_for_speech("Clearly fine.") == "Clearly fine."

    def test_word_cap_never_splits_words(self):
        text = " ".join("word{}".format(i) for i in range(200))
        result = optimize_text_for_speech(text, max_words=150)
        words = result.split()
        assert len(words) == 150
        assert words[-1] == "word149"

    def test_short_text_untouched(self):
        assert optimize_text_for_speech("Nice try.") == "Nice try."

    def test_collapses_blank_lines(self):
        assert optimize_text_for_speech("A.\n\n\n\nB.") == "A.\n\nB."


class TestEstimates:
    def test_speech_duration_by_intensity(self):
        text = "x" * 100
        assert estimate_speech_duration(text, "mild") == pytest.approx(7.5)
        assert estimate_speech_duration(text, "medium") == pytest.approx(6.5)
        assert estimate_speech_duration(text, "spicy") == pytest.approx(5.8)
        assert estimate_speech_duration(text, "no_mercy") == pytest.approx(5.0)

    def test_more_intense_is_faster(self):
        text = "Nice try."
        durations = [estimate_speech_duration(text, i) for i in ("mild", "medium", "spicy", "no_mercy")]
        assert durations == sorted(durations, reverse=True)
        assert all(d > 0 for d in durations)

    def test_unknown_intensity_uses_medium(self):
        assert estimate_speech_duration("abc", "volcanic") == estimate_speech_duration("abc", "medium")

    def test_mp3_duration(self):
        # 128 kbps → 16000 bytes per second
        assert estimate_mp3_duration(32000) == pytest.approx(2.0)
        assert estimate_mp3_duration(32000, bitrate_kbps=64) == pytest.approx(4.0)

    def test_mp3_bitrate_must_be_positive(self):
        with pytest.raises(ValueError):
            estimate_mp3_duration(100, bitrate_kbps=0)


class TestSpokenTokenCount:
    def test_full_text_covers_every_token(self, reference_clean):
        tokens = segment_words(reference_clean)
        assert spoken_token_count(tokens, reference_clean) == len(tokens)

    def test_word_cap_stops_early(self):
        text = " ".join("word{}".format(i) for i in range(200)) + "."
        tokens = segment_words(text)
        assert spoken_token_count(tokens, optimize_text_for_speech(text)) == 150

    def test_fillers_and_markdown_are_skipped(self):
        text = "To be honest, your **code** is bad. Really bad."
        tokens = segment_words(text)
        assert spoken_token_count(tokens, optimize_text_for_speech(text)) == len(tokens)
        assert spoken_token_count(tokens, optimize_text_for_speech(text, max_words=3)) == 6

    def test_trailing_break_counts(self):
        tokens = segment_words("One.\n\nTwo.")
        assert spoken_token_count(tokens, "One. Two.") == len(tokens)

    def test_unrelated_text_covers_everything(self):
        tokens = segment_words("Nice try.")
        assert spoken_token_count(tokens, "something else") == len(tokens)
        assert spoken_token_count(tokens, "") == len(tokens)
