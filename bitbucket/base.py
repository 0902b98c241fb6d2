"""
bitbucket/base.py -- Client interface shared by provider variants.

The decorator only talks to InsightsClient. A variant fixes its capability set
(how it shapes annotations, reports and link values) when it is constructed,
so the decorator never inspects payload types at runtime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

import requests

from core.models import (
    AnalysisSummary,
    AnnotationRecord,
    AnnotationUploadLimit,
    DataValue,
    QualityGateStatus,
    ReportData,
)

PAYLOAD_TOO_LARGE = 413
CONFLICT = 409

_NO_BODY_MESSAGE = "Request failed but Bitbucket didn't respond with a proper error message"


class ProviderError(Exception):
    """Non-success response from the provider's REST API."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Bitbucket responded with HTTP {status}: {body}")
        self.status = status
        self.body = body

    def is_error(self, status: int) -> bool:
        return self.status == status


def is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300


def validate_response(response: requests.Response) -> None:
    """Raise ProviderError unless the response status is 2xx.

    The error body is read as text; a missing body gets a fixed placeholder
    rather than masking the status with a secondary failure.
    """
    if is_success(response):
        return
    body = response.text if response.content else _NO_BODY_MESSAGE
    raise ProviderError(response.status_code, body)


class InsightsClient(ABC):
    # ------------------------------------------------------------------
    # Capability set -- payload shapes for this provider variant
    # ------------------------------------------------------------------

    @abstractmethod
    def create_annotation(self, record: AnnotationRecord):
        """Return the provider payload for one annotation."""

    @abstractmethod
    def create_report(
        self,
        report_data: Sequence[ReportData],
        description: str,
        creation_date: datetime,
        dashboard_url: str,
        logo_url: str,
        status: QualityGateStatus,
    ):
        """Return the provider payload for the quality report."""

    @abstractmethod
    def create_link_data_value(self, url: str) -> DataValue: ...

    # ------------------------------------------------------------------
    # Provider calls
    # ------------------------------------------------------------------

    @abstractmethod
    def upload_report(self, project: str, repository: str, commit: str, report) -> None: ...

    @abstractmethod
    def upload_annotations(self, project: str, repository: str, commit: str, annotations: Sequence) -> None: ...

    @abstractmethod
    def delete_annotations(self, project: str, repository: str, commit: str) -> None:
        """Remove annotations left by a previous run. May be a no-op."""

    @abstractmethod
    def approve_pull_request(self, project: str, repository: str, pull_request_id: int, unapprove: bool) -> None: ...

    @abstractmethod
    def create_or_update_summary_comment(
        self, project: str, repository: str, pull_request_id: int, analysis: AnalysisSummary
    ) -> None: ...

    @abstractmethod
    def get_annotation_upload_limit(self) -> AnnotationUploadLimit: ...

    @abstractmethod
    def supports_insights(self) -> bool: ...

    @abstractmethod
    def is_oauth2(self) -> bool: ...

    def close(self) -> None:
        """Release transport resources. Variants holding a session override this."""
