"""
tests/conftest.py -- Shared fixtures for the decoration test suite.

This module provides:
  - make_response(): a real requests.Response backed by an in-memory body
  - RecordingAdapter: a transport adapter that replays canned responses and
    records every PreparedRequest it was asked to send
  - fake_http: builds a requests.Session with a RecordingAdapter mounted
  - configuration / oauth2_configuration: provider coordinates
  - make_analysis: AnalysisSummary factory with overridable fields

Design: HTTP is faked at the adapter seam rather than by mocking Session
methods, so the real requests machinery runs -- header merging, auth hooks,
query encoding, and response hooks that resend through response.connection.
"""

from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from typing import Any

import pytest
import requests
from requests.adapters import BaseAdapter

from core.models import (
    AnalysisSummary,
    AnnotationRecord,
    AnnotationSeverity,
    AnnotationType,
    BitbucketConfiguration,
    QualityGateStatus,
)

BASE_URL = "https://api.bitbucket.org"

# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


def make_response(status: int, body: Any = b"") -> requests.Response:
    """Build a requests.Response whose body is read from memory.

    dict/list bodies are JSON-encoded; str bodies are UTF-8 encoded.
    """
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    response = requests.Response()
    response.status_code = status
    response.raw = io.BytesIO(body or b"")
    response.encoding = "utf-8"
    response.headers["Content-Type"] = "application/json"
    return response


class RecordingAdapter(BaseAdapter):
    """Replays (status, body) pairs in order and records the requests sent."""

    def __init__(self, responses) -> None:
        super().__init__()
        self._responses = list(responses)
        self.requests: list[requests.PreparedRequest] = []

    def send(self, request, **kwargs):
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        status, body = self._responses.pop(0)
        response = make_response(status, body)
        response.request = request
        response.url = request.url
        response.connection = self
        return response

    def close(self) -> None:
        pass


@pytest.fixture
def fake_http():
    """Return a builder: fake_http((200, {...}), (404, b"")) -> (session, adapter)."""

    def _build(*responses):
        adapter = RecordingAdapter(responses)
        session = requests.Session()
        session.trust_env = False
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session, adapter

    return _build


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def configuration() -> BitbucketConfiguration:
    return BitbucketConfiguration(
        url=BASE_URL,
        token="basic_token",
        oauth2_key="",
        repository="repository",
        project="project",
    )


@pytest.fixture
def oauth2_configuration() -> BitbucketConfiguration:
    return BitbucketConfiguration(
        url=BASE_URL,
        token="oauth_token",
        oauth2_key="oauth_key",
        repository="repository",
        project="project",
    )


def _annotation(
    index: int = 0,
    severity: AnnotationSeverity = AnnotationSeverity.MEDIUM,
    type: AnnotationType = AnnotationType.CODE_SMELL,
) -> AnnotationRecord:
    return AnnotationRecord(
        external_id=f"issue-{index}",
        path="src/app.py",
        line=index + 1,
        link=f"https://sonar.example.com/issues?id={index}",
        message=f"Issue number {index}",
        severity=severity,
        type=type,
    )


@pytest.fixture
def make_annotation():
    """Return the AnnotationRecord factory: make_annotation(index, severity, type)."""
    return _annotation


@pytest.fixture
def canned_response():
    """Return make_response for tests that patch the transport directly."""
    return make_response


@pytest.fixture
def make_analysis():
    """Return a factory for AnalysisSummary; keyword arguments override defaults."""

    def _build(**overrides) -> AnalysisSummary:
        values = {
            "project_key": "my-project",
            "commit_sha": "abc123",
            "pull_request_id": 42,
            "quality_gate_status": QualityGateStatus.OK,
            "dashboard_url": "https://sonar.example.com/dashboard?id=my-project&pullRequest=42",
            "base_image_url": "https://sonar.example.com/images",
            "analysis_date": datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
        }
        values.update(overrides)
        return AnalysisSummary(**values)

    return _build
