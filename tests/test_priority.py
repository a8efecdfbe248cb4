from datetime import datetime

import pytest

from smartinput.services.priority import adjust_confidence, recognize_priority
from smartinput.services.tags import PriorityLevel, TagType

NOW = datetime(2024, 1, 15, 10, 0)


def priority(text):
    tags = recognize_priority(text, NOW)
    assert len(tags) <= 1
    return tags[0] if tags else None


class TestExplicitMarkers:
    def test_p1(self):
        tag = priority("Fix login bug p1")
        assert tag.type == TagType.PRIORITY
        assert tag.value == PriorityLevel.HIGH
        assert tag.original_text == "p1"
        assert tag.display_text == "High Priority"
        assert tag.confidence == pytest.approx(0.98)
        assert tag.source == "priority-parser"

    def test_p2_and_p3(self):
        assert priority("Review PR P2").value == PriorityLevel.MEDIUM
        assert priority("Clean desk p3").value == PriorityLevel.LOW

    def test_bang_word(self):
        tag = priority("Pay rent !high")
        assert tag.value == PriorityLevel.HIGH
        assert tag.original_text == "!high"
        assert tag.confidence == pytest.approx(0.95)

    def test_bang_runs(self):
        assert priority("Ship it !!!").value == PriorityLevel.HIGH
        assert priority("Ship it !!").value == PriorityLevel.MEDIUM
        assert priority("Ship it !").value == PriorityLevel.LOW

    def test_exclamation_after_word_is_not_priority(self):
        assert priority("Great job!") is None


class TestKeywords:
    def test_urgent(self):
        tag = priority("urgent: renew passport")
        assert tag.value == PriorityLevel.HIGH
        assert tag.confidence == pytest.approx(0.85)

    def test_phrase_beats_single_word(self):
        tag = priority("this is high priority")
        assert tag.original_text == "high priority"
        assert tag.confidence == pytest.approx(0.9)

    def test_low_priority_phrase(self):
        tag = priority("low priority: tidy garage")
        assert tag.value == PriorityLevel.LOW
        assert tag.original_text == "low priority"

    def test_someday(self):
        assert priority("learn the banjo someday").value == PriorityLevel.LOW

    def test_no_cue(self):
        assert priority("Buy milk") is None
        assert priority("") is None


class TestConsolidation:
    def test_highest_severity_wins(self):
        tag = priority("p2 but actually urgent")
        assert tag.value == PriorityLevel.HIGH
        assert tag.original_text == "urgent"

    def test_confidence_breaks_severity_ties(self):
        tag = priority("important, p1")
        assert tag.original_text == "p1"

    def test_earliest_breaks_full_ties(self):
        tag = priority("urgent and critical")
        assert tag.original_text == "urgent"
        assert tag.start_index == 0


class TestConsumedCues:
    def test_other_cues_are_consumed(self):
        tag = priority("urgent important fix")
        assert tag.original_text == "urgent"
        assert tag.consumed_spans == ((7, 16),)

    def test_single_cue_consumes_nothing(self):
        assert priority("Renew passport p1").consumed_spans == ()

    def test_cues_inside_winner_are_not_repeated(self):
        tag = priority("this is high priority")
        assert tag.consumed_spans == ()

    def test_lower_severity_cues_are_consumed(self):
        text = "p2 but actually urgent"
        tag = priority(text)
        assert [text[s:e] for s, e in tag.consumed_spans] == ["p2"]

    def test_bare_cue_preferred_over_label(self):
        text = "#urgent important fix"
        tag = priority(text)
        assert tag.original_text == "important"
        assert [text[s:e] for s, e in tag.consumed_spans] == ["urgent"]


class TestAdjustConfidence:
    def test_short_marker_in_long_text_is_discounted(self):
        text = "Prepare the quarterly planning deck for the leadership offsite p1"
        assert len(text) > 50
        assert adjust_confidence(0.95, "p1", text) == pytest.approx(0.86)

    def test_clamped(self):
        assert adjust_confidence(0.05, "x", "x") == pytest.approx(0.1)
        assert adjust_confidence(0.95, "p1", "p1") == pytest.approx(0.98)
