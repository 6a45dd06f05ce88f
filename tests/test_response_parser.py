"""Tests for agent response parsing, validation and metric normalization."""

import json

import pytest

from src.chat.domain import (
    AnalysisResult,
    DegradedRetrieval,
    LiveRetrieval,
    RetrievedDocument,
    ResponseParser,
    parse_outermost_braces,
    parse_whole_text,
)
from src.core import MalformedAgentResponseException

from fakes import analysis_json


EMBEDDED = 'here is the result: {"type":"analysis_result","problem_summary":"x"} thanks'


class RecordingStrategy:
    def __init__(self, strategy):
        self.strategy = strategy
        self.calls = 0

    def __call__(self, raw_text):
        self.calls += 1
        return self.strategy(raw_text)


@pytest.fixture
def parser() -> ResponseParser:
    return ResponseParser()


class TestParseStrategies:
    def test_whole_text_accepts_object(self):
        outcome = parse_whole_text('{"type": "analysis_result"}')
        assert outcome.ok
        assert outcome.strategy == "whole_text"
        assert outcome.data == {"type": "analysis_result"}

    def test_whole_text_rejects_prose(self):
        outcome = parse_whole_text(EMBEDDED)
        assert not outcome.ok
        assert outcome.error

    def test_whole_text_rejects_non_object_json(self):
        assert not parse_whole_text("[1, 2, 3]").ok
        assert not parse_whole_text('"just a string"').ok

    def test_outermost_braces_extracts_embedded_object(self):
        outcome = parse_outermost_braces(EMBEDDED)
        assert outcome.ok
        assert outcome.data == {"type": "analysis_result", "problem_summary": "x"}

    def test_outermost_braces_spans_nested_objects(self):
        outcome = parse_outermost_braces('Result: {"a": {"b": 1}} end')
        assert outcome.data == {"a": {"b": 1}}

    def test_outermost_braces_without_braces(self):
        outcome = parse_outermost_braces("not json at all")
        assert not outcome.ok
        assert outcome.strategy == "outermost_braces"


class TestResponseParser:
    def test_valid_json_never_reaches_second_strategy(self):
        first = RecordingStrategy(parse_whole_text)
        second = RecordingStrategy(parse_outermost_braces)
        parser = ResponseParser(strategies=(first, second))

        result = parser.parse(analysis_json())

        assert result.type == "analysis_result"
        assert first.calls == 1
        assert second.calls == 0

    def test_embedded_json_recovered_by_second_strategy(self):
        first = RecordingStrategy(parse_whole_text)
        second = RecordingStrategy(parse_outermost_braces)
        parser = ResponseParser(strategies=(first, second))

        result = parser.parse(EMBEDDED)

        assert first.calls == 1
        assert second.calls == 1
        assert result.type == "analysis_result"
        assert result.problem_summary == "x"

    def test_extract_reports_winning_strategy(self, parser):
        assert parser.extract(EMBEDDED).strategy == "outermost_braces"

    def test_not_json_at_all_is_malformed(self, parser):
        with pytest.raises(MalformedAgentResponseException) as exc_info:
            parser.parse("not json at all")

        assert "not valid JSON" in exc_info.value.message
        assert exc_info.value.raw_text == "not json at all"

    @pytest.mark.parametrize("raw", ["", "   \n"])
    def test_empty_response_is_malformed(self, parser, raw):
        with pytest.raises(MalformedAgentResponseException):
            parser.parse(raw)

    @pytest.mark.parametrize("missing", ["type", "problem_summary"])
    def test_missing_required_field(self, parser, missing):
        data = json.loads(analysis_json())
        del data[missing]

        with pytest.raises(MalformedAgentResponseException) as exc_info:
            parser.parse(json.dumps(data))

        assert missing in exc_info.value.message

    def test_blank_required_field(self, parser):
        with pytest.raises(MalformedAgentResponseException):
            parser.parse(analysis_json(problem_summary="   "))

    def test_optional_fields_get_defaults(self, parser):
        result = parser.parse(EMBEDDED)

        assert result.category == "question"
        assert result.severity == "medium"
        assert result.priority_guess == 3
        assert result.agent_notes == ""
        assert result.metrics.confidence == 0.5

    def test_out_of_range_values_are_coerced(self, parser):
        raw = analysis_json(
            category="Catastrophe",
            severity="HIGH",
            priority_guess=9,
            metrics={"confidence": 7},
        )
        result = parser.parse(raw)

        assert result.category == "question"
        assert result.severity == "high"
        assert result.priority_guess == 5
        assert result.metrics.confidence == 1.0

    def test_priority_string_digits(self, parser):
        assert parser.parse(analysis_json(priority_guess="1")).priority_guess == 1

    @pytest.mark.parametrize(
        "overrides, expected_priority, expected_confidence",
        [
            ({"priority_guess": 10 ** 400}, 5, 0.83),
            ({"priority_guess": -(10 ** 400)}, 1, 0.83),
            ({"metrics": {"confidence": 10 ** 400}}, 2, 1.0),
            ({"metrics": {"confidence": -(10 ** 400)}}, 2, 0.0),
            ({"metrics": {"tokens_used": 10 ** 400, "confidence": 0.83}}, 2, 0.83),
        ],
    )
    def test_huge_integers_are_clamped(
        self, parser, overrides, expected_priority, expected_confidence
    ):
        result = parser.parse(analysis_json(**overrides))

        assert result.priority_guess == expected_priority
        assert result.metrics.confidence == expected_confidence

    def test_non_analysis_type_is_kept(self, parser):
        result = parser.parse(analysis_json(type="clarification_request"))
        assert result.type == "clarification_request"
        assert not result.creates_backlog_task

    def test_needs_a_strategy(self):
        with pytest.raises(ValueError):
            ResponseParser(strategies=())


class TestNormalize:
    def test_measured_metrics_replace_reported(self, parser):
        reported = parser.parse(analysis_json())
        retrieval = LiveRetrieval(
            documents=[
                RetrievedDocument(id="a", title="A", content="", relevance=0.8),
                RetrievedDocument(id="b", title="B", content="", relevance=0.5),
            ],
            processing_time_ms=64,
        )

        result = parser.normalize(reported, latency_ms=1234, retrieval=retrieval, token_usage=210)

        assert result.metrics.api2_docs_count == 2
        assert result.metrics.api2_docs_ids == ["a", "b"]
        assert result.metrics.api2_processing_time == 64
        assert result.metrics.latency_ms == 1234
        assert result.metrics.tokens_used == 210
        # the only metric taken from the agent
        assert result.metrics.confidence == 0.83

    def test_unreported_usage_counts_as_zero(self, parser):
        retrieval = DegradedRetrieval(documents=[], processing_time_ms=0)
        result = parser.normalize(
            parser.parse(analysis_json()), latency_ms=5, retrieval=retrieval, token_usage=None
        )
        assert result.metrics.tokens_used == 0
        assert result.metrics.api2_docs_count == 0

    def test_normalize_returns_new_result(self, parser):
        reported = parser.parse(analysis_json())
        retrieval = LiveRetrieval(documents=[], processing_time_ms=1)

        result = parser.normalize(reported, latency_ms=10, retrieval=retrieval, token_usage=1)

        assert isinstance(result, AnalysisResult)
        assert reported.metrics.api2_docs_count == 42
        assert result.metrics.api2_docs_count == 0
