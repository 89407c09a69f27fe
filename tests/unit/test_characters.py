"""Tests for character-name detection."""

from __future__ import annotations

import pytest

from storyloom.observability.tracing import RecordingTracer
from storyloom.pipeline.stages.characters import (
    detect_characters,
    is_valid_name,
    trim_leading_function_words,
)


def _names(lines: list[str], **kwargs: int) -> list[str]:
    return [c.name for c in detect_characters(lines, **kwargs)]


class TestIsValidName:
    @pytest.mark.parametrize("name", ["Maria", "Anne Marie", "Jean-Luc", "O'Brien", "Tomas"])
    def test_valid(self, name: str) -> None:
        assert is_valid_name(name)

    @pytest.mark.parametrize(
        "name",
        [
            "Al",  # too short
            "Bob",  # single word under four letters
            "MARIA",  # all caps
            "The",  # excluded word
            "However",  # excluded word
            "Mr Smith",  # leading title
            "Dr Watson",
            "R2d2",  # digits
            "maria",  # not capitalized
            "A" + "b" * 40,  # too long
        ],
    )
    def test_invalid(self, name: str) -> None:
        assert not is_valid_name(name)


class TestTrimLeadingFunctionWords:
    def test_trims_excluded_words(self) -> None:
        assert trim_leading_function_words("Then Maria") == ("Maria", 5)
        assert trim_leading_function_words("When Then Maria Lopez") == ("Maria Lopez", 10)

    def test_keeps_phrase_without_excluded_head(self) -> None:
        assert trim_leading_function_words("Maria Lopez") == ("Maria Lopez", 0)

    def test_all_words_excluded(self) -> None:
        name, _ = trim_leading_function_words("The")
        assert name == ""


class TestDetectCharacters:
    def test_quoted_speech_attribution(self) -> None:
        lines = ['"Maria" said, "Let\'s go."', '"Maria" said, "Let\'s go."']

        characters = detect_characters(lines)

        assert len(characters) == 1
        maria = characters[0]
        assert maria.name == "Maria"
        assert maria.confidence >= 0.5
        assert maria.occurrences == 2
        assert maria.first_seen == 0
        assert maria.strongest_context == "dialogue"

    def test_curly_quotes(self) -> None:
        lines = ["\u201cMaria\u201d whispered softly.", "\u201cMaria\u201d shouted."]
        assert _names(lines) == ["Maria"]

    def test_action_and_attribution(self) -> None:
        lines = ["Tomas walked to the door.", "Tomas asked about the lamp."]

        characters = detect_characters(lines)

        assert characters[0].name == "Tomas"
        assert characters[0].strongest_context == "attribution"

    def test_verbs_match_any_case(self) -> None:
        assert _names(["Tomas WALKED in.", "Tomas Walked out."]) == ["Tomas"]

    def test_lowercase_names_never_captured(self) -> None:
        assert _names(["maria walked in.", "maria walked out."]) == []

    def test_sentence_start_common_word_never_detected(self) -> None:
        lines = ["The wind howled. The door shut. The lamp went out."] * 10
        assert "The" not in _names(lines)

    def test_strong_names_need_two_sightings(self) -> None:
        assert _names(['"Maria" said hello.']) == []

    def test_min_occurrences_configurable(self) -> None:
        lines = ['"Maria" said hi.', '"Maria" said bye.']

        assert _names(lines) == ["Maria"]
        assert _names(lines, min_occurrences_strong=3) == []

    def test_leading_function_word_trimmed(self) -> None:
        lines = ["Then Maria walked away.", "Then Maria walked back."]
        assert _names(lines) == ["Maria"]

    def test_multi_word_name(self) -> None:
        lines = ["Anna Karenina walked in.", "Anna Karenina sat down."]
        assert _names(lines) == ["Anna Karenina"]

    def test_titles_rejected(self) -> None:
        lines = ["Dr Watson said nothing.", "Dr Watson said more."]
        assert "Dr Watson" not in _names(lines)

    @pytest.mark.parametrize("keyword", ["Chapter", "Part", "Book", "Act", "Prologue"])
    def test_heading_keywords_never_detected(self, keyword: str) -> None:
        lines = [f"{keyword} 1", "", "The rain fell on the town."] * 8
        assert keyword not in _names(lines)

    def test_indefinite_pronouns_never_detected(self) -> None:
        lines = ["Nothing moved in the square. Nobody walked past."] * 8
        assert _names(lines) == []

    def test_skipped_lines_not_scanned(self) -> None:
        lines = ["Maria walked in.", "Maria walked out.", "Tomas ran.", "Tomas ran."]

        assert _names(lines) == ["Maria", "Tomas"]
        assert [c.name for c in detect_characters(lines, skip_lines={2, 3})] == ["Maria"]


class TestSentenceStartRule:
    def test_sentence_start_ignored_once_name_is_strong(self) -> None:
        lines = ['"Maria" said hi.', '"Maria" said bye.', "It rained. Maria"]

        characters = detect_characters(lines)

        assert characters[0].occurrences == 2

    def test_sentence_start_only_names_need_many_sightings(self) -> None:
        few = ["Silence. Lanterns flickered."] * 5
        many = ["Silence. Lanterns flickered."] * 10

        assert "Silence" not in _names(few)
        assert "Silence" in _names(many)

    def test_lowercase_elsewhere_drops_weak_candidate(self) -> None:
        recorder = RecordingTracer()
        lines = ["Silence. Lanterns flickered."] * 10 + ["The silence was total."]

        characters = detect_characters(lines, tracer=recorder)

        assert "Silence" not in [c.name for c in characters]
        dropped = [e.fields["name"] for e in recorder.of("character_lowercase_dropped")]
        assert "Silence" in dropped

    def test_lowercase_elsewhere_keeps_strong_candidate(self) -> None:
        lines = ["Hope walked in.", "Hope sat down.", "There was hope yet."]
        assert _names(lines) == ["Hope"]


class TestOrdering:
    def test_most_confident_first(self) -> None:
        lines = [
            "Tomas walked in.",
            "Tomas sat down.",
            '"Maria" said hi.',
            '"Maria" said bye.',
            '"Maria" said again.',
        ]
        assert _names(lines) == ["Maria", "Tomas"]

    def test_ties_broken_by_first_seen(self) -> None:
        lines = ["Tomas walked in.", "Elena walked in.", "Tomas sat.", "Elena sat."]
        assert _names(lines) == ["Tomas", "Elena"]

    def test_deterministic(self) -> None:
        lines = ["Tomas walked in.", '"Maria" said so.', "Maria ran.", "Tomas sat."] * 3
        assert detect_characters(lines) == detect_characters(list(lines))
