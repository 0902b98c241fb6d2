"""Unit tests for core/report.py -- report rows and description text."""

import pytest

from core.models import Link, Percentage, QualityGateStatus, Text
from core.report import build_report_data, maintainability_row, reliability_row, report_description, security_row

_LINK = Link("Go to SonarQube", "https://sonar.example.com/dashboard")


class TestRows:
    @pytest.mark.parametrize("bugs, text", [(0, "0 Bugs"), (1, "1 Bug"), (7, "7 Bugs")])
    def test_reliability_plural(self, bugs, text):
        assert reliability_row(bugs).value == Text(text)

    def test_security_counts_vulnerabilities_and_hotspots(self):
        assert security_row(1, 0).value.value == "1 Vulnerability (and 0 Hotspots)"
        assert security_row(3, 1).value.value == "3 Vulnerabilities (and 1 Hotspot)"

    def test_maintainability_plural(self):
        assert maintainability_row(1).value.value == "1 Code Smell"
        assert maintainability_row(12).value.value == "12 Code Smells"


class TestBuildReportData:
    def test_rows_in_display_order(self, make_analysis):
        rows = build_report_data(make_analysis(), _LINK)
        assert [row.title for row in rows] == [
            "Reliability",
            "Code coverage",
            "Security",
            "Duplication",
            "Maintainability",
            "Analysis details",
        ]

    def test_values_taken_from_analysis(self, make_analysis):
        analysis = make_analysis(
            bug_count=2,
            vulnerability_count=1,
            hotspot_count=4,
            code_smell_count=30,
            coverage=81.5,
            duplication=3.2,
        )

        rows = {row.title: row.value for row in build_report_data(analysis, _LINK)}

        assert rows["Reliability"] == Text("2 Bugs")
        assert rows["Code coverage"] == Percentage(81.5)
        assert rows["Security"] == Text("1 Vulnerability (and 4 Hotspots)")
        assert rows["Duplication"] == Percentage(3.2)
        assert rows["Maintainability"] == Text("30 Code Smells")
        assert rows["Analysis details"] is _LINK


class TestReportDescription:
    def test_passed_gate(self, make_analysis):
        assert report_description(make_analysis()) == "Quality Gate passed\n"

    def test_failed_gate_lists_conditions(self, make_analysis):
        analysis = make_analysis(
            quality_gate_status=QualityGateStatus.ERROR,
            failed_conditions=("Coverage on New Code < 80%", "2 New Bugs > 0"),
        )
        assert report_description(analysis) == (
            "Quality Gate failed\n- Coverage on New Code < 80%\n- 2 New Bugs > 0"
        )
