"""
bitbucket/decorator.py -- Decorates one pull request with the analysis outcome.

Sequence for one run:
  1. Skip quietly when the provider has no Code Insights support.
  2. Build and upload the quality report.
  3. Upload annotations, most severe first, in batches that respect the
     provider's per-call and per-commit limits.
  4. Approve or unapprove the pull request (when enabled).
  5. Create or update the summary comment.

The first provider, auth or transport error ends the run. It is logged with
the project key and returned in the DecorationResult; it never propagates to
the caller. Steps that already completed are left in place.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Optional, TypeVar

import requests

from auth.oauth2 import AuthError
from core.models import (
    SEVERITY_RANK,
    AnalysisSummary,
    AnnotationRecord,
    AnnotationUploadLimit,
    BitbucketConfiguration,
    DecorationResult,
    QualityGateStatus,
)
from core.report import build_report_data, report_description

from .base import PAYLOAD_TOO_LARGE, InsightsClient, ProviderError
from .cloud import BitbucketCloudClient

logger = logging.getLogger("insights.decorator")

T = TypeVar("T")

ClientFactory = Callable[[BitbucketConfiguration], InsightsClient]


def sort_by_severity(records: Sequence[AnnotationRecord]) -> list[AnnotationRecord]:
    """Most severe first. Stable, so equal severities keep their input order."""
    return sorted(records, key=lambda record: SEVERITY_RANK[record.severity], reverse=True)


def partition(items: Sequence[T], size: int) -> list[Sequence[T]]:
    if size <= 0:
        raise ValueError(f"Batch size must be positive, got {size}")
    return [items[start : start + size] for start in range(0, len(items), size)]


def exceeds_annotation_limit(batch_number: int, limit: AnnotationUploadLimit) -> bool:
    """True when batch `batch_number` (1-based) would pass the per-commit ceiling."""
    return batch_number * limit.batch_size > limit.total_allowed


def upload_annotations(
    client: InsightsClient, project: str, repository: str, analysis: AnalysisSummary
) -> tuple[int, bool]:
    """Replace the commit's annotations. Returns (uploaded, truncated).

    Truncation is not an error: the provider ceiling and a 413 from the
    provider both end the loop with a warning. Any other ProviderError
    propagates.
    """
    client.delete_annotations(project, repository, analysis.commit_sha)

    limit = client.get_annotation_upload_limit()
    annotations = [client.create_annotation(record) for record in sort_by_severity(analysis.annotations)]

    uploaded = 0
    for batch_number, batch in enumerate(partition(annotations, limit.batch_size), start=1):
        if exceeds_annotation_limit(batch_number, limit):
            logger.warning(
                "This project has too many issues. The provider only supports %d."
                " The remaining %d annotation(s) will be truncated.",
                limit.total_allowed,
                len(annotations) - uploaded,
            )
            return uploaded, True

        try:
            client.upload_annotations(project, repository, analysis.commit_sha, batch)
        except ProviderError as e:
            if not e.is_error(PAYLOAD_TOO_LARGE):
                raise
            logger.warning(
                "The annotations will be truncated since the maximum number of annotations"
                " for this report has been reached."
            )
            return uploaded, True
        uploaded += len(batch)

    return uploaded, False


def decorate(
    analysis: AnalysisSummary,
    configuration: BitbucketConfiguration,
    approval_enabled: bool = False,
    client: Optional[InsightsClient] = None,
    client_factory: ClientFactory = BitbucketCloudClient,
) -> DecorationResult:
    """Publish report, annotations, approval and summary comment for one pull request.

    Args:
        analysis:         Outcome of the analysis for this commit / pull request.
        configuration:    Provider coordinates and credentials.
        approval_enabled: Approve when the gate passed, unapprove otherwise.
        client:           Pre-built client; when None one is built with client_factory.
    """
    owns_client = client is None
    if client is None:
        client = client_factory(configuration)
    try:
        return _decorate(client, analysis, configuration, approval_enabled)
    finally:
        if owns_client:
            client.close()


def _decorate(
    client: InsightsClient,
    analysis: AnalysisSummary,
    configuration: BitbucketConfiguration,
    approval_enabled: bool,
) -> DecorationResult:
    project = configuration.project
    repository = configuration.repository

    result = DecorationResult()
    try:
        if not client.supports_insights():
            logger.warning("Your Bitbucket instance does not support the Code Insights API.")
            return result

        report = client.create_report(
            build_report_data(analysis, client.create_link_data_value(analysis.dashboard_url)),
            report_description(analysis),
            analysis.analysis_date,
            analysis.dashboard_url,
            analysis.logo_url,
            analysis.quality_gate_status,
        )
        client.upload_report(project, repository, analysis.commit_sha, report)

        result.annotations_uploaded, result.annotations_truncated = upload_annotations(
            client, project, repository, analysis
        )

        if approval_enabled:
            client.approve_pull_request(
                project,
                repository,
                analysis.pull_request_id,
                unapprove=analysis.quality_gate_status != QualityGateStatus.OK,
            )

        client.create_or_update_summary_comment(project, repository, analysis.pull_request_id, analysis)
    except (ProviderError, AuthError, requests.RequestException) as e:
        logger.error("Could not decorate pull request for project %s", analysis.project_key, exc_info=True)
        result.error = str(e)
        return result

    result.decorated = True
    logger.info(
        "Decorated pull request %s with %d annotation(s)", analysis.pull_request_id, result.annotations_uploaded
    )
    return result
