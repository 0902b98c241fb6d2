"""
bitbucket/cloud.py -- Bitbucket Cloud Code Insights and pull-request client.

All calls are synchronous and go through one requests.Session per client.
Without OAuth2 the session sends the configured token as Basic auth. With an
OAuth2 key configured, an Oauth2Authenticator is installed as session.auth and
replaces that header with a bearer token (see auth/oauth2.py for the retry
behaviour on rejected tokens).

Every response is used as a context manager so the connection goes back to
the pool on every path, including ignored and failed responses.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Optional

import requests

from auth.oauth2 import Oauth2Authenticator
from core.models import (
    AnalysisSummary,
    AnnotationRecord,
    AnnotationUploadLimit,
    BitbucketConfiguration,
    DataValue,
    Link,
    QualityGateStatus,
    ReportData,
)

from .base import CONFLICT, InsightsClient, is_success, validate_response
from .payloads import CloudAnnotation, CloudDataRow, CloudReport

logger = logging.getLogger("insights.client")

REPORT_KEY = "sonarqube-analysis"
TITLE = "SonarQube"
REPORTER = "SonarQube"
LINK_TEXT = "Go to SonarQube"
REPORT_TYPE = "COVERAGE"

# Every summary comment starts with this phrase; it is also the server-side
# filter used to find the comment again on the next run.
COMMENT_MARKER = "SonarQube analysis reports"

ANNOTATION_BATCH_SIZE = 100
MAX_ANNOTATIONS_PER_REPORT = 1000


class BitbucketCloudClient(InsightsClient):
    def __init__(
        self,
        configuration: BitbucketConfiguration,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._configuration = configuration
        self._timeout = timeout
        self._session = self._configure_session(session if session is not None else requests.Session())

    def _configure_session(self, session: requests.Session) -> requests.Session:
        session.headers["Accept"] = "application/json"
        session.headers["Authorization"] = f"Basic {self._configuration.token}"
        if self.is_oauth2():
            session.auth = Oauth2Authenticator(self._configuration, timeout=self._timeout)
        return session

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def _repository_url(self, project: str, repository: str) -> str:
        return f"{self._configuration.url}/2.0/repositories/{project}/{repository}"

    def _report_url(self, project: str, repository: str, commit: str) -> str:
        return f"{self._repository_url(project, repository)}/commit/{commit}/reports/{REPORT_KEY}"

    def _pull_request_url(self, project: str, repository: str, pull_request_id: int) -> str:
        return f"{self._repository_url(project, repository)}/pullrequests/{pull_request_id}"

    # ------------------------------------------------------------------
    # Capability set
    # ------------------------------------------------------------------

    def create_annotation(self, record: AnnotationRecord) -> CloudAnnotation:
        return CloudAnnotation.from_record(record)

    def create_report(
        self,
        report_data: Sequence[ReportData],
        description: str,
        creation_date: datetime,
        dashboard_url: str,
        logo_url: str,
        status: QualityGateStatus,
    ) -> CloudReport:
        # Bitbucket rejects a localhost dashboard link; use a real https URL when debugging locally.
        return CloudReport(
            title=TITLE,
            details=description,
            reporter=REPORTER,
            created_on=creation_date,
            link=dashboard_url,
            logo_url=logo_url,
            report_type=REPORT_TYPE,
            result="FAILED" if status == QualityGateStatus.ERROR else "PASSED",
            data=[CloudDataRow.from_report_data(row) for row in report_data],
        )

    def create_link_data_value(self, url: str) -> DataValue:
        return Link(text=LINK_TEXT, href=url)

    def get_annotation_upload_limit(self) -> AnnotationUploadLimit:
        return AnnotationUploadLimit(batch_size=ANNOTATION_BATCH_SIZE, total_allowed=MAX_ANNOTATIONS_PER_REPORT)

    def supports_insights(self) -> bool:
        return True

    def is_oauth2(self) -> bool:
        return self._configuration.is_oauth2()

    # ------------------------------------------------------------------
    # Reports and annotations
    # ------------------------------------------------------------------

    def delete_existing_report(self, project: str, repository: str, commit: str) -> None:
        logger.info("Deleting existing report on Bitbucket Cloud")
        # Not validated: most of the time there is no report yet and this is a 404.
        with self._session.delete(self._report_url(project, repository, commit), timeout=self._timeout) as response:
            logger.debug("Delete report returned HTTP %s", response.status_code)

    def upload_report(self, project: str, repository: str, commit: str, report: CloudReport) -> None:
        self.delete_existing_report(project, repository, commit)

        body = report.model_dump(mode="json")
        logger.info("Creating report on Bitbucket Cloud")
        logger.debug("Create report: %s", body)

        with self._session.put(
            self._report_url(project, repository, commit), json=body, timeout=self._timeout
        ) as response:
            validate_response(response)

    def upload_annotations(
        self, project: str, repository: str, commit: str, annotations: Sequence[CloudAnnotation]
    ) -> None:
        if not annotations:
            return

        body = [annotation.model_dump(mode="json") for annotation in annotations]
        logger.info("Creating %d annotation(s) on Bitbucket Cloud", len(body))
        logger.debug("Create annotations: %s", body)

        url = f"{self._report_url(project, repository, commit)}/annotations"
        with self._session.post(url, json=body, timeout=self._timeout) as response:
            validate_response(response)

    def delete_annotations(self, project: str, repository: str, commit: str) -> None:
        # Annotations belong to the report and go away when it is replaced.
        pass

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    def approve_pull_request(self, project: str, repository: str, pull_request_id: int, unapprove: bool) -> None:
        url = f"{self._pull_request_url(project, repository, pull_request_id)}/approve"

        if unapprove:
            logger.info("Unapproving pull request %s on Bitbucket Cloud", pull_request_id)
            # Not validated: Bitbucket answers 404 when there was no approval to withdraw.
            with self._session.delete(url, timeout=self._timeout) as response:
                if not is_success(response):
                    logger.debug("Unapprove returned HTTP %s", response.status_code)
            return

        logger.info("Approving pull request %s on Bitbucket Cloud", pull_request_id)
        with self._session.post(url, json={}, timeout=self._timeout) as response:
            # 409: already approved by this account.
            if response.status_code != CONFLICT:
                validate_response(response)

    def get_summary_comment_id(self, project: str, repository: str, pull_request_id: int) -> Optional[str]:
        """Return the id of this tool's top-level summary comment, or None."""
        url = f"{self._pull_request_url(project, repository, pull_request_id)}/comments"
        query = f'content.raw~"{COMMENT_MARKER} " AND deleted=false AND inline.path=null'

        with self._session.get(url, params={"q": query}, timeout=self._timeout) as response:
            validate_response(response)
            values = response.json().get("values", [])

        if not values:
            return None
        return str(values[0]["id"])

    def create_or_update_summary_comment(
        self, project: str, repository: str, pull_request_id: int, analysis: AnalysisSummary
    ) -> None:
        comment_id = self.get_summary_comment_id(project, repository, pull_request_id)
        url = f"{self._pull_request_url(project, repository, pull_request_id)}/comments"
        body = {"content": {"raw": summary_comment_text(analysis)}}

        if comment_id is not None:
            logger.info("Updating pull request summary comment on Bitbucket Cloud")
            response = self._session.put(f"{url}/{comment_id}", json=body, timeout=self._timeout)
        else:
            logger.info("Creating pull request summary comment on Bitbucket Cloud")
            response = self._session.post(url, json=body, timeout=self._timeout)

        with response:
            validate_response(response)


def summary_comment_text(analysis: AnalysisSummary) -> str:
    """Two sentences: how bad it is, then where to look (or a treat when clean)."""
    if not analysis.has_issues:
        severity = "no"
    elif analysis.passed:
        severity = "minor"
    else:
        severity = "severe"

    first = f"{COMMENT_MARKER} {severity} issues."
    if analysis.has_issues:
        second = f"Please refer to [dashboard]({analysis.dashboard_url}) for details."
    else:
        second = "Take a chocolate :)"
    return f"{first} {second}"
