"""
core/loader.py -- Validates the analysis export and maps it to the domain.

The export is produced by the analysis pipeline (one JSON document per pull
request). These Pydantic v2 models define that file contract; they are kept
separate from the dataclasses in core/models.py, which own the internal
representation. to_summary() is the single mapping point between the two.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import AnalysisSummary, AnnotationRecord, AnnotationSeverity, AnnotationType, QualityGateStatus

logger = logging.getLogger("insights.loader")


class AnnotationEntry(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    external_id: str
    path: str
    line: int = Field(default=0, ge=0)
    link: str = ""
    message: str
    severity: AnnotationSeverity
    type: AnnotationType

    def to_record(self) -> AnnotationRecord:
        return AnnotationRecord(
            external_id=self.external_id,
            path=self.path,
            line=self.line,
            link=self.link,
            message=self.message,
            severity=self.severity,
            type=self.type,
        )


class IssueCounts(BaseModel):
    """Open issue counts per rule type. Keys follow the analyzer's vocabulary."""

    model_config = ConfigDict(populate_by_name=True)

    bugs: int = Field(default=0, ge=0, alias="BUG")
    vulnerabilities: int = Field(default=0, ge=0, alias="VULNERABILITY")
    hotspots: int = Field(default=0, ge=0, alias="SECURITY_HOTSPOT")
    code_smells: int = Field(default=0, ge=0, alias="CODE_SMELL")


class AnalysisFile(BaseModel):
    """One analysis export. Unknown keys are ignored so exporters can add fields."""

    model_config = ConfigDict(extra="ignore")

    project_key: str
    commit_sha: str = Field(min_length=1)
    pull_request_id: int = Field(gt=0)
    quality_gate_status: QualityGateStatus
    dashboard_url: str
    base_image_url: str = ""
    analysis_date: datetime
    issue_counts: IssueCounts = Field(default_factory=IssueCounts)
    coverage: Optional[float] = None
    duplication: Optional[float] = None
    failed_conditions: list[str] = Field(default_factory=list)
    issue_count: Optional[int] = Field(default=None, ge=0)
    annotations: list[AnnotationEntry] = Field(default_factory=list)

    def to_summary(self) -> AnalysisSummary:
        """Build the AnalysisSummary handed to the decorator.

        Missing coverage or duplication means the gate had no value for that
        metric; the report shows 0 in that case.
        """
        issue_count = self.issue_count if self.issue_count is not None else len(self.annotations)
        return AnalysisSummary(
            project_key=self.project_key,
            commit_sha=self.commit_sha,
            pull_request_id=self.pull_request_id,
            quality_gate_status=self.quality_gate_status,
            dashboard_url=self.dashboard_url,
            base_image_url=self.base_image_url.rstrip("/"),
            analysis_date=self.analysis_date,
            bug_count=self.issue_counts.bugs,
            vulnerability_count=self.issue_counts.vulnerabilities,
            hotspot_count=self.issue_counts.hotspots,
            code_smell_count=self.issue_counts.code_smells,
            coverage=self.coverage or 0.0,
            duplication=self.duplication or 0.0,
            failed_conditions=tuple(self.failed_conditions),
            issue_count=issue_count,
            annotations=tuple(entry.to_record() for entry in self.annotations),
        )


def load_analysis(path: str) -> AnalysisSummary:
    """Read and validate an analysis export from disk.

    Raises ValueError if the file is missing, is not valid JSON, or does not
    match the AnalysisFile contract (pydantic.ValidationError is a ValueError).
    """
    file_path = Path(path).resolve()
    if not file_path.is_file():
        raise ValueError(f"'{path}' is not a readable file.")
    try:
        raw = json.loads(file_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValueError(f"Could not read analysis file '{path}': {e}") from e
    summary = AnalysisFile.model_validate(raw).to_summary()
    logger.debug("Loaded analysis for %s with %d annotation(s)", summary.project_key, len(summary.annotations))
    return summary
