"""Tests for research job models and engine status mapping."""

import re
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from deep_research_mcp.core.research.models import (
    DEFAULT_MODEL,
    Citation,
    ResearchJob,
    ResearchModel,
    ResearchReport,
    ResearchStatus,
    generate_request_id,
    map_engine_status,
)


class TestResearchStatus:
    """Tests for ResearchStatus enum."""

    def test_values(self):
        assert ResearchStatus.PENDING.value == "pending"
        assert ResearchStatus.COMPLETED.value == "completed"
        assert ResearchStatus.FAILED.value == "failed"

    def test_terminal(self):
        assert not ResearchStatus.PENDING.is_terminal
        assert ResearchStatus.COMPLETED.is_terminal
        assert ResearchStatus.FAILED.is_terminal


class TestMapEngineStatus:
    """Engine statuses collapse onto the local state machine."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("queued", ResearchStatus.PENDING),
            ("in_progress", ResearchStatus.PENDING),
            ("completed", ResearchStatus.COMPLETED),
            ("failed", ResearchStatus.FAILED),
            ("cancelled", ResearchStatus.FAILED),
            ("incomplete", ResearchStatus.FAILED),
        ],
    )
    def test_known_statuses(self, raw, expected):
        assert map_engine_status(raw) is expected

    @pytest.mark.parametrize("raw", ["weird", "", None])
    def test_unknown_status_stays_pending(self, raw):
        assert map_engine_status(raw) is ResearchStatus.PENDING


class TestGenerateRequestId:
    def test_format(self):
        assert re.fullmatch(r"req_\d+_[0-9a-f]{12}", generate_request_id())

    def test_unique(self):
        ids = {generate_request_id() for _ in range(500)}
        assert len(ids) == 500


class TestResearchJob:
    """Tests for the ResearchJob model."""

    def test_defaults(self):
        job = ResearchJob(query="q", response_id="op_1")
        assert job.status is ResearchStatus.PENDING
        assert job.model is DEFAULT_MODEL
        assert job.result is None
        assert job.error is None
        assert job.poll_failures == 0
        assert job.created_at.tzinfo is not None
        assert not job.is_terminal

    def test_response_id_required(self):
        with pytest.raises(ValidationError):
            ResearchJob(query="q")

    def test_model_accepts_value_string(self):
        job = ResearchJob(
            query="q", response_id="op_1", model="o4-mini-deep-research-2025-06-26"
        )
        assert job.model is ResearchModel.O4_MINI

    def test_elapsed_minutes_rounds(self):
        created = datetime(2025, 7, 1, 10, 0, tzinfo=timezone.utc)
        job = ResearchJob(query="q", response_id="op_1", created_at=created)
        assert job.elapsed_minutes(created + timedelta(seconds=29)) == 0
        assert job.elapsed_minutes(created + timedelta(seconds=90)) == 2
        assert job.elapsed_minutes(created + timedelta(seconds=91)) == 2
        assert job.elapsed_minutes(created + timedelta(seconds=150)) == 3
        assert job.elapsed_minutes(created + timedelta(minutes=17)) == 17

    def test_status_payload(self):
        job = ResearchJob(query="ping", response_id="op_1")
        payload = job.status_payload()
        assert payload["request_id"] == job.id
        assert payload["status"] == "pending"
        assert payload["query"] == "ping"
        assert payload["model"] == "o3-deep-research-2025-06-26"
        assert payload["created_at"] == job.created_at.isoformat()
        assert payload["elapsed_minutes"] == 0


class TestResearchReport:
    def test_to_dict_omits_missing_fields(self):
        report = ResearchReport(
            report="text",
            citations=[
                Citation(id=1, title="A", url="https://a.example"),
                Citation(id=2),
            ],
        )
        assert report.citation_count == 2
        assert report.to_dict() == {
            "report": "text",
            "citations": [
                {"id": 1, "title": "A", "url": "https://a.example"},
                {"id": 2, "title": "Unknown"},
            ],
            "citation_count": 2,
        }
