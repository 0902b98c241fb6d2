"""
core/models.py -- Domain dataclasses for pull-request decoration.

These are the internal domain truth. Wire payloads sent to the provider live
in bitbucket/payloads.py and are built from these by the client.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class QualityGateStatus(str, Enum):
    OK = "OK"
    ERROR = "ERROR"


class AnnotationSeverity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AnnotationType(str, Enum):
    BUG = "BUG"
    VULNERABILITY = "VULNERABILITY"
    CODE_SMELL = "CODE_SMELL"


# Higher rank uploads first, so truncation drops the least severe annotations.
SEVERITY_RANK: dict[AnnotationSeverity, int] = {
    AnnotationSeverity.HIGH: 3,
    AnnotationSeverity.MEDIUM: 2,
    AnnotationSeverity.LOW: 1,
}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BitbucketConfiguration:
    """Connection details for one decoration run.

    token is the Basic credential in plain mode, or the OAuth2 consumer
    secret when oauth2_key is set.
    """

    url: str
    token: str
    oauth2_key: str
    repository: str
    project: str

    def is_oauth2(self) -> bool:
        return bool(self.oauth2_key)


@dataclass(frozen=True)
class AnnotationUploadLimit:
    batch_size: int
    total_allowed: int


# ---------------------------------------------------------------------------
# Report data values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Percentage:
    value: float
    type: str = field(default="PERCENTAGE", init=False)

    def payload(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Text:
    value: str
    type: str = field(default="TEXT", init=False)

    def payload(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Link:
    text: str
    href: str
    type: str = field(default="LINK", init=False)

    def payload(self) -> Any:
        return {"text": self.text, "href": self.href}


DataValue = Percentage | Text | Link


@dataclass(frozen=True)
class ReportData:
    title: str
    value: DataValue


# ---------------------------------------------------------------------------
# Analysis input
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnnotationRecord:
    """A single already-mapped finding, ready to become a provider annotation."""

    external_id: str
    path: str
    line: int
    link: str
    message: str
    severity: AnnotationSeverity
    type: AnnotationType


@dataclass(frozen=True)
class AnalysisSummary:
    """Everything the analysis collaborator hands over for one pull request.

    issue_count is the total number of open issues, which can exceed the
    number of annotations (issues without a file path carry no annotation).
    """

    project_key: str
    commit_sha: str
    pull_request_id: int
    quality_gate_status: QualityGateStatus
    dashboard_url: str
    base_image_url: str
    analysis_date: datetime
    bug_count: int = 0
    vulnerability_count: int = 0
    hotspot_count: int = 0
    code_smell_count: int = 0
    coverage: float = 0.0
    duplication: float = 0.0
    failed_conditions: tuple[str, ...] = ()
    issue_count: int = 0
    annotations: tuple[AnnotationRecord, ...] = ()

    @property
    def passed(self) -> bool:
        return self.quality_gate_status == QualityGateStatus.OK

    @property
    def has_issues(self) -> bool:
        return self.issue_count > 0 or bool(self.annotations)

    @property
    def logo_url(self) -> str:
        return f"{self.base_image_url}/common/icon.png"


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


@dataclass
class DecorationResult:
    decorated: bool = False
    annotations_uploaded: int = 0
    annotations_truncated: bool = False
    error: Optional[str] = None
