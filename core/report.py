"""
core/report.py -- Builds the rows and description of the quality report.

Pure functions, no I/O. The link row is provider-specific, so the caller
passes in the link value produced by its client.
"""

from .models import AnalysisSummary, DataValue, Percentage, ReportData, Text


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def reliability_row(bugs: int) -> ReportData:
    return ReportData("Reliability", Text(f"{bugs} {_plural(bugs, 'Bug', 'Bugs')}"))


def security_row(vulnerabilities: int, hotspots: int) -> ReportData:
    text = (
        f"{vulnerabilities} {_plural(vulnerabilities, 'Vulnerability', 'Vulnerabilities')}"
        f" (and {hotspots} {_plural(hotspots, 'Hotspot', 'Hotspots')})"
    )
    return ReportData("Security", Text(text))


def maintainability_row(code_smells: int) -> ReportData:
    return ReportData("Maintainability", Text(f"{code_smells} {_plural(code_smells, 'Code Smell', 'Code Smells')}"))


def build_report_data(analysis: AnalysisSummary, details_link: DataValue) -> list[ReportData]:
    """Return the report rows in display order."""
    return [
        reliability_row(analysis.bug_count),
        ReportData("Code coverage", Percentage(analysis.coverage)),
        security_row(analysis.vulnerability_count, analysis.hotspot_count),
        ReportData("Duplication", Percentage(analysis.duplication)),
        maintainability_row(analysis.code_smell_count),
        ReportData("Analysis details", details_link),
    ]


def report_description(analysis: AnalysisSummary) -> str:
    """Gate verdict on the first line, one bullet per failed condition after it."""
    header = "Quality Gate passed" if analysis.passed else "Quality Gate failed"
    body = "\n".join(f"- {condition}" for condition in analysis.failed_conditions)
    return f"{header}\n{body}"
