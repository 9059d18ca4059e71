"""Tests for cue location and the keyword heuristic.

WHY: The marker path must be exact: the right token, no duplicates, never
a paragraph break. The heuristic path is random on purpose, so it is
tested by subset and cap properties rather than exact positions.
"""

from __future__ import annotations

import random

from roastmenow.core.cues import CUE_RULES, locate_cues, synthesize_cues
from roastmenow.core.ir import CueMarker, CuePoint, CueTag
from roastmenow.core.markers import extract_markers
from roastmenow.core.segmenter import segment_words


def _prepare(text):
    clean, markers = extract_markers(text)
    return markers, segment_words(clean)


class TestLocateCues:
    def test_reference_roast(self, reference_roast):
        markers, tokens = _prepare(reference_roast)
        cues = locate_cues(markers, tokens)
        assert cues == [
            CuePoint(token_index=2, tag=CueTag.AIRHORN),
            CuePoint(token_index=10, tag=CueTag.FATALITY),
        ]
        assert tokens[2].text == "That"
        assert tokens[10].text == "typos."

    def test_no_markers(self, reference_clean):
        assert locate_cues([], segment_words(reference_clean)) == []

    def test_no_tokens(self):
        assert locate_cues([CueMarker(CueTag.WOW, 0)], []) == []

    def test_offset_beyond_text_clamps_to_last_token(self):
        tokens = segment_words("one two three")
        cues = locate_cues([CueMarker(CueTag.OOF, 500)], tokens)
        assert cues == [CuePoint(2, CueTag.OOF)]

    def test_offset_inside_word(self):
        tokens = segment_words("alpha beta gamma")
        # offset 7 is the "e" in "beta"
        assert locate_cues([CueMarker(CueTag.BRUH, 7)], tokens) == [CuePoint(1, CueTag.BRUH)]

    def test_collision_moves_to_next_word(self):
        markers, tokens = _prepare("[OOF][BRUH] hi there")
        cues = locate_cues(markers, tokens)
        assert cues == [CuePoint(0, CueTag.OOF), CuePoint(1, CueTag.BRUH)]

    def test_collision_at_end_is_dropped(self):
        markers, tokens = _prepare("all done [WOW] [FATALITY]")
        cues = locate_cues(markers, tokens)
        assert cues == [CuePoint(1, CueTag.WOW)]

    def test_never_lands_on_break(self):
        tokens = segment_words("One.\n\nTwo.")
        # offset 5 is the second newline of the break
        cues = locate_cues([CueMarker(CueTag.WOW, 5)], tokens)
        assert cues == [CuePoint(2, CueTag.WOW)]

    def test_paragraph_offsets_align(self):
        markers, tokens = _prepare("Line one.\n\n[OOF] Line two.")
        cues = locate_cues(markers, tokens)
        assert tokens[cues[0].token_index].text == "Line"
        assert cues[0].token_index == 3

    def test_unique_and_valid_indices(self):
        text = " ".join("[{}] w{}".format(tag.value, i) for i, tag in enumerate(CueTag))
        markers, tokens = _prepare(text + " [OOF] [OOF] [OOF]")
        cues = locate_cues(markers, tokens)
        indices = [c.token_index for c in cues]
        assert len(indices) == len(set(indices))
        assert all(0 <= i < len(tokens) for i in indices)
        assert indices == sorted(indices)


class _KeepAll(random.Random):
    """rng whose sample() keeps the whole population, exposing every candidate."""

    def sample(self, population, k, **kwargs):
        return list(population)


class TestSynthesizeCues:
    ROAST = (
        "Your repos are abandoned and lonely. "
        "Every build failed with bugs. "
        "Why would you even do that? "
        "Your README is amazing, said nobody. "
        "You think you are a legend. "
        "Boom! "
        "This profile is dead. "
        "Zero stars, zero followers, zero hope."
    )

    def test_candidates_follow_rule_order(self):
        tokens = segment_words(self.ROAST)
        candidates = synthesize_cues(tokens, rng=_KeepAll())
        assert [c.tag for c in candidates] == [
            CueTag.EMOTIONAL_DAMAGE,
            CueTag.OOF,
            CueTag.BRUH,
            CueTag.EMOTIONAL_DAMAGE,
            CueTag.THUG_LIFE,
            CueTag.AIRHORN,
            CueTag.FATALITY,
            CueTag.EMOTIONAL_DAMAGE,
        ]

    def test_first_matching_rule_wins(self):
        # "abandoned" would be EMOTIONAL_DAMAGE, but FATALITY is checked first
        tokens = segment_words("Abandoned and dead. Abandoned and dead.")
        cues = synthesize_cues(tokens, rng=random.Random(0))
        assert len(cues) == 1
        assert cues[0].tag is CueTag.FATALITY
        assert CUE_RULES[0][1] is CueTag.FATALITY

    def test_single_candidate_is_dropped(self):
        # cap is min(6, 1 // 2) == 0
        assert synthesize_cues(segment_words("This is dead."), rng=random.Random(0)) == []

    def test_subset_of_candidates_and_capped(self):
        tokens = segment_words(self.ROAST)
        candidates = set(synthesize_cues(tokens, rng=_KeepAll()))
        assert len(candidates) == 8
        for seed in range(30):
            cues = synthesize_cues(tokens, rng=random.Random(seed))
            assert set(cues) <= candidates
            assert len(cues) == min(6, len(candidates) // 2)
            assert [c.token_index for c in cues] == sorted(c.token_index for c in cues)

    def test_max_cues_caps_selection(self):
        tokens = segment_words(self.ROAST)
        assert len(synthesize_cues(tokens, rng=random.Random(3), max_cues=2)) == 2

    def test_cues_land_on_sentence_ends(self):
        tokens = segment_words(self.ROAST)
        for cue in synthesize_cues(tokens, rng=_KeepAll()):
            assert tokens[cue.token_index].ends_sentence

    def test_window_flush_without_punctuation(self):
        words = ["filler"] * 11 + ["destroyed"] + ["filler"] * 11 + ["destroyed"]
        tokens = segment_words(" ".join(words))
        candidates = synthesize_cues(tokens, rng=_KeepAll(), window=12)
        assert [c.token_index for c in candidates] == [11, 23]
        cues = synthesize_cues(tokens, rng=random.Random(0), window=12)
        assert len(cues) == 1
        assert cues[0].tag is CueTag.FATALITY

    def test_breaks_are_skipped(self):
        tokens = segment_words("So sad.\n\nSo dead.\n\nBoom!\n\nWow!")
        candidates = synthesize_cues(tokens, rng=_KeepAll())
        assert [tokens[c.token_index].text for c in candidates] == ["sad.", "dead.", "Boom!", "Wow!"]

    def test_empty(self):
        assert synthesize_cues([], rng=random.Random(0)) == []
