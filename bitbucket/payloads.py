"""
bitbucket/payloads.py -- Bitbucket Cloud Code Insights request bodies.

These Pydantic v2 models define the JSON contract of the Reports and
Annotations endpoints. They are frozen: a payload is built once per run and
uploaded as-is.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from core.models import AnnotationRecord, ReportData


class CloudAnnotation(BaseModel):
    model_config = ConfigDict(frozen=True)

    external_id: str
    line: int
    link: str
    summary: str
    path: str
    severity: str
    annotation_type: str

    @classmethod
    def from_record(cls, record: AnnotationRecord) -> "CloudAnnotation":
        return cls(
            external_id=record.external_id,
            line=record.line,
            link=record.link,
            summary=record.message,
            path=record.path,
            severity=record.severity.value,
            annotation_type=record.type.value,
        )


class CloudDataRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    type: str
    value: Any

    @classmethod
    def from_report_data(cls, row: ReportData) -> "CloudDataRow":
        return cls(title=row.title, type=row.value.type, value=row.value.payload())


class CloudReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    details: str
    reporter: str
    created_on: datetime
    link: str
    logo_url: str
    report_type: str
    result: str  # PASSED | FAILED
    data: list[CloudDataRow]
