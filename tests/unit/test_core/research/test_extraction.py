"""Tests for normalizing completed engine responses into reports."""

import pytest

from deep_research_mcp.core.research.errors import MalformedResultError
from deep_research_mcp.core.research.extraction import (
    extract_citations,
    extract_report,
)
from tests.conftest import completed_document


class TestExtractCitations:
    """Citation ordinals and defaults."""

    def test_ordinals_follow_annotation_order(self):
        item = {
            "text": "r",
            "annotations": [
                {"title": "A", "url": "u1"},
                {"url": "u2"},
                {"title": "C", "url": "u3", "snippet": "s3"},
            ],
        }
        citations = extract_citations(item)
        assert [c.id for c in citations] == [1, 2, 3]
        assert [c.title for c in citations] == ["A", "Unknown", "C"]
        assert [c.url for c in citations] == ["u1", "u2", "u3"]
        assert citations[2].snippet == "s3"
        assert citations[0].snippet is None

    def test_missing_annotations(self):
        assert extract_citations({"text": "r"}) == []

    def test_annotations_not_a_list(self):
        assert extract_citations({"text": "r", "annotations": "nope"}) == []

    def test_non_mapping_annotation_keeps_its_slot(self):
        citations = extract_citations({"annotations": [None, {"title": "B"}]})
        assert [(c.id, c.title) for c in citations] == [(1, "Unknown"), (2, "B")]


class TestExtractReport:
    """Report extraction from engine output."""

    def test_basic_report(self):
        doc = completed_document(
            text="Final report.",
            annotations=[{"title": "Src", "url": "https://src.example"}],
        )
        report = extract_report(doc)
        assert report.report == "Final report."
        assert report.citation_count == 1
        assert report.citations[0].title == "Src"

    def test_uses_last_output_item(self):
        doc = {
            "output": [
                {"type": "message", "content": [{"text": "draft"}]},
                {"type": "message", "content": [{"text": "final"}]},
            ]
        }
        assert extract_report(doc).report == "final"

    def test_snippet_only_citation_serialization(self):
        doc = completed_document(
            text="r",
            annotations=[
                {"title": "A", "url": "u1"},
                {"title": "B", "url": "u2"},
                {"snippet": "s"},
            ],
        )
        citations = extract_report(doc).to_dict()["citations"]
        assert citations[0] == {"id": 1, "title": "A", "url": "u1"}
        assert citations[2] == {"id": 3, "title": "Unknown", "snippet": "s"}

    def test_pong_without_annotations(self):
        report = extract_report(completed_document(text="pong"))
        assert report.report == "pong"
        assert report.citations == []
        assert report.citation_count == 0

    @pytest.mark.parametrize(
        "doc",
        [
            {},
            {"output": None},
            {"output": []},
            {"output": "text"},
            None,
        ],
    )
    def test_missing_output(self, doc):
        with pytest.raises(MalformedResultError, match="No results available"):
            extract_report(doc)

    @pytest.mark.parametrize(
        "last_item",
        [
            {"type": "message"},
            {"type": "message", "content": []},
            {"type": "message", "content": "text"},
            {"type": "message", "content": [None]},
            "not-a-dict",
        ],
    )
    def test_unusable_final_message(self, last_item):
        with pytest.raises(
            MalformedResultError, match="Unable to extract results from response"
        ):
            extract_report({"output": [last_item]})

    def test_falls_back_to_string_form_without_text(self):
        item = {"type": "output_text", "value": 42}
        report = extract_report({"output": [{"content": [item]}]})
        assert report.report == str(item)

    def test_idempotent(self):
        doc = completed_document(
            text="Report", annotations=[{"title": "A"}, {"title": "B"}]
        )
        assert extract_report(doc) == extract_report(doc)
