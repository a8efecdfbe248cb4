import re
from dataclasses import replace
from datetime import datetime
from unittest.mock import patch

import pytest
import pytz

from smartinput.errors import InvalidAnchorError, SmartInputError
from smartinput.services.labels import recognize_labels
from smartinput.services.parser import (
    Recognizer,
    SmartParser,
    aggregate_confidence,
    build_clean_title,
    default_recognizers,
    get_parser,
    parse,
    reset_parser,
)
from smartinput.services.tags import PriorityLevel, TagType

# Monday
NOW = datetime(2024, 1, 15, 10, 0)


class TestSmartParser:
    def setup_method(self):
        self.parser = SmartParser(infer_categories=False)

    def test_full_example(self):
        text = "Lunch at Central Park next Friday at noon #urgent @john"
        result = self.parser.parse(text, NOW)

        assert result.clean_title == "Lunch"
        assert [t.type for t in result.tags] == [
            TagType.LOCATION,
            TagType.DATE,
            TagType.TIME,
            TagType.LABEL,
            TagType.PERSON,
        ]
        location, date, time, label, person = result.tags
        assert location.value == "Central Park"
        assert date.value == datetime(2024, 1, 19)
        assert time.value.hour == 12
        assert label.value == "urgent"
        assert person.value == "John"
        assert result.error is None

    def test_label_beats_keyword_inside_it(self):
        result = self.parser.parse("Lunch #urgent", NOW)
        assert len(result.tags) == 1
        assert result.tags[0].type == TagType.LABEL
        assert result.has_conflicts
        assert result.conflicts[0].discarded[0].type == TagType.PRIORITY

    def test_plain_text(self):
        result = self.parser.parse("Buy milk", NOW)
        assert result.clean_title == "Buy milk"
        assert result.tags == []
        assert result.confidence == 1.0
        assert not result.has_conflicts

    def test_empty_text(self):
        result = self.parser.parse("", NOW)
        assert result.clean_title == ""
        assert result.tags == []
        assert result.confidence == 1.0

    def test_friday_at_3(self):
        result = self.parser.parse("Friday at 3", NOW)
        assert [t.type for t in result.tags] == [TagType.DATE, TagType.TIME]
        assert not result.tags[0].overlaps(result.tags[1])
        assert result.clean_title == ""

    def test_street_address(self):
        result = self.parser.parse("Drop off keys 123 Main St", NOW)
        (location,) = result.tags_of(TagType.LOCATION)
        assert location.value == "123 Main St"
        assert result.clean_title == "Drop off keys"

    def test_full_address_wins(self):
        text = "Interview at 1 Infinite Loop, Cupertino, CA 95014"
        result = self.parser.parse(text, NOW)
        assert len(result.tags) == 1
        assert result.tags[0].value == "1 Infinite Loop, Cupertino, CA 95014"
        assert result.tags[0].confidence == 0.95
        discarded = result.conflicts[0].discarded
        assert any(t.value == "1 Infinite Loop" for t in discarded)

    def test_central_park(self):
        result = self.parser.parse("Picnic at Central Park", NOW)
        assert result.tags[0].value == "Central Park"
        assert result.clean_title == "Picnic"

    def test_priority(self):
        result = self.parser.parse("Renew passport p1", NOW)
        (tag,) = result.tags
        assert tag.value == PriorityLevel.HIGH
        assert result.clean_title == "Renew passport"

    def test_failed_ordinal_leaves_text_in_title(self):
        result = self.parser.parse("Review fifth Friday of next month", NOW)
        assert result.tags_of(TagType.DATE) == []
        assert "Friday" in result.clean_title

    def test_clean_title_whitespace(self):
        result = self.parser.parse("  Call   mom  tomorrow   at 5pm  ", NOW)
        assert result.clean_title == "Call"

    def test_ids_are_unique_and_deterministic(self):
        text = "Call Sarah tomorrow at 5pm #family p2"
        first = self.parser.parse(text, NOW)
        second = self.parser.parse(text, NOW)
        ids = [t.id for t in first.tags]
        assert len(set(ids)) == len(ids)
        assert all(i.startswith("c") for i in ids)
        assert first == second

    def test_tags_sorted_and_disjoint(self):
        text = "urgent: email Priya the 2024-03-05 report at 4pm in Boston #work !!"
        result = self.parser.parse(text, NOW)
        starts = [t.start_index for t in result.tags]
        assert starts == sorted(starts)
        for i, a in enumerate(result.tags):
            assert text[a.start_index:a.end_index] == a.original_text
            for b in result.tags[i + 1:]:
                assert not a.overlaps(b)

    def test_confidence_is_mean(self):
        result = self.parser.parse("Call Sarah tomorrow", NOW)
        expected = sum(t.confidence for t in result.tags) / len(result.tags)
        assert result.confidence == pytest.approx(expected)

    def test_meet_at_street_address(self):
        result = self.parser.parse("Meet at 123 Main St, bring docs", NOW)
        (location,) = result.tags
        assert location.type == TagType.LOCATION
        assert re.fullmatch(r"123\s+Main\s+St", location.original_text, re.IGNORECASE)

    def test_ship_to_full_address(self):
        result = self.parser.parse("Ship to 1 Infinite Loop, Cupertino, CA 95014", NOW)
        (location,) = result.tags
        assert "Infinite Loop" in location.display_text
        assert "95014" in location.display_text
        bare = self.parser.parse("Ship to Cupertino", NOW).tags[0]
        assert location.confidence > bare.confidence
        assert result.clean_title == "Ship to"

    def test_street_name_without_number(self):
        result = self.parser.parse("Meet on Main Street", NOW)
        (location,) = result.tags
        assert location.value == "Main Street"
        assert result.clean_title == "Meet on"

    def test_date_range(self):
        result = self.parser.parse("Offsite Jan 20 - Jan 23", NOW)
        assert [t.display_text for t in result.tags] == ["Saturday", "Until Jan 23"]
        assert [t.value for t in result.tags] == [datetime(2024, 1, 20), datetime(2024, 1, 23)]
        assert result.clean_title == "Offsite"
        assert not result.has_conflicts

    def test_all_priority_cues_leave_title(self):
        result = self.parser.parse("urgent important fix", NOW)
        (tag,) = result.tags
        assert tag.value == PriorityLevel.HIGH
        assert result.clean_title == "fix"

    def test_anchor_at_end_of_calendar(self):
        result = self.parser.parse("Call mom tomorrow", datetime(9999, 12, 31))
        assert result.error is None
        assert result.tags_of(TagType.DATE) == []
        assert result.clean_title == "Call tomorrow"

    @pytest.mark.parametrize(
        "text",
        [
            "email John's report tomorrow",
            "urgent important fix",
            "#urgent important fix",
            "text Sarah's new number",
            "Lunch at Central Park next Friday at noon #urgent @john",
            "Call mom tomorrow at 5pm p1",
            "Meet at 123 Main St, bring docs",
            "Ship to 1 Infinite Loop, Cupertino, CA 95014",
            "Conference Jan 20 - Jan 23 in Boston",
            "Meet on Main Street",
        ],
    )
    def test_clean_title_has_no_tags_left(self, text):
        first = self.parser.parse(text, NOW)
        second = self.parser.parse(first.clean_title, NOW)
        assert second.tags == []
        assert second.clean_title == first.clean_title

    def test_venues_opt_in(self):
        assert self.parser.parse("Go to the gym", NOW).tags == []
        result = SmartParser(infer_categories=False, infer_venues=True).parse("Go to the gym", NOW)
        (venue,) = result.tags
        assert venue.value == "gym"
        assert result.clean_title == "Go"

    def test_aware_anchor(self):
        now = pytz.timezone("America/Los_Angeles").localize(datetime(2024, 1, 15, 10, 0))
        result = self.parser.parse("Dentist tomorrow", now)
        assert result.tags[0].value.tzinfo is not None
        assert result.tags[0].value.day == 16


class TestValidation:
    def setup_method(self):
        self.parser = SmartParser()

    def test_missing_anchor(self):
        with pytest.raises(InvalidAnchorError):
            self.parser.parse("Call mom", None)

    def test_string_anchor(self):
        with pytest.raises(InvalidAnchorError):
            self.parser.parse("Call mom", "2024-01-15")

    def test_invalid_anchor_is_type_error(self):
        with pytest.raises(TypeError):
            self.parser.parse("Call mom", 12345)
        assert issubclass(InvalidAnchorError, SmartInputError)

    def test_non_string_text(self):
        with pytest.raises(TypeError):
            self.parser.parse(None, NOW)


class TestRecognizerFaults:
    def test_fault_is_reported_not_raised(self):
        def broken(text, now):
            raise RuntimeError("kaboom")

        parser = SmartParser(
            recognizers=[Recognizer("broken", broken), Recognizer("labels", recognize_labels)]
        )
        with patch("smartinput.services.parser.sentry") as mock_sentry:
            result = parser.parse("Plan trip #travel", NOW)

        assert result.error == "broken failed: kaboom"
        assert [t.value for t in result.tags] == ["travel"]
        assert result.clean_title == "Plan trip"
        mock_sentry.report_recognizer_failure.assert_called_once()
        assert mock_sentry.report_recognizer_failure.call_args.args[0] == "broken"

    def test_first_error_wins(self):
        def fail(message):
            def recognize(text, now):
                raise ValueError(message)

            return recognize

        parser = SmartParser(recognizers=[Recognizer("a", fail("one")), Recognizer("b", fail("two"))])
        result = parser.parse("anything", NOW)
        assert result.error == "a failed: one"
        assert result.tags == []
        assert result.clean_title == "anything"


class TestDebugParse:
    def test_candidates_per_recognizer(self):
        outcome = SmartParser(infer_categories=False).debug_parse("Lunch #urgent", NOW)
        assert set(outcome.candidates) == {"dates", "priority", "locations", "people", "labels"}
        assert len(outcome.candidates["priority"]) == 1
        assert len(outcome.candidates["labels"]) == 1
        assert outcome.errors == {}
        assert len(outcome.result.tags) == 1


class TestCategoryInference:
    def test_enabled(self):
        result = SmartParser(infer_categories=True).parse("Buy groceries", NOW)
        (label,) = result.tags
        assert label.value == "shopping"
        assert result.clean_title == "groceries"

    def test_default_follows_settings(self):
        with patch("smartinput.services.parser.settings") as mock_settings:
            mock_settings.parser_infer_categories = True
            recognizers = default_recognizers()
        labels = recognizers[-1]
        assert [t.value for t in labels.recognize("Buy groceries", NOW)] == ["shopping"]

    def test_recognizer_order(self):
        names = [r.name for r in default_recognizers(False)]
        assert names == ["dates", "priority", "locations", "people", "labels"]


class TestHelpers:
    def test_build_clean_title(self):
        result = SmartParser().parse("Call mom tomorrow", NOW)
        assert build_clean_title("Call mom tomorrow", result.tags) == "Call"
        assert build_clean_title("  a   b ", []) == "a b"

    def test_build_clean_title_removes_consumed_spans(self):
        text = "urgent important fix"
        (tag,) = SmartParser().parse(text, NOW).tags
        assert build_clean_title(text, [tag]) == "fix"
        assert build_clean_title(text, [replace(tag, consumed_spans=())]) == "important fix"

    def test_aggregate_confidence_empty(self):
        assert aggregate_confidence([]) == 1.0


class TestModuleParser:
    def setup_method(self):
        reset_parser()

    def teardown_method(self):
        reset_parser()

    def test_shared_parser(self):
        assert get_parser() is get_parser()

    def test_reset(self):
        first = get_parser()
        reset_parser()
        assert get_parser() is not first

    def test_parse(self):
        assert parse("Call mom tomorrow", NOW).clean_title == "Call"
