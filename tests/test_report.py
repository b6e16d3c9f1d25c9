"""Tests for report building and rendering."""

import json
from pathlib import Path

from pyaudit.errors import AnalysisTimeout, ParseError
from pyaudit.findings.models import Finding, Location
from pyaudit.reporting.console import print_report
from pyaudit.reporting.report import build_report, finding_from_error, render_json, render_text
from rich.console import Console


def _finding(path: str, line: int, rule_id: str = "PY001", column: int = 1) -> Finding:
    return Finding(
        rule_id=rule_id,
        message=f"{rule_id} at {line}",
        location=Location(path=path, line=line, column=column),
    )


def test_empty_report_is_clean():
    report = build_report("/src", [], [])
    assert report.is_clean
    assert report.exit_code == 0
    assert report.total == 0
    assert report.files == []
    assert render_text(report) == "No findings (0 file(s) scanned).\n"


def test_clean_files_are_listed():
    report = build_report("/src", ["b.py", "a.py"], [])
    assert report.files_scanned == 2
    assert [fr.path for fr in report.files] == ["a.py", "b.py"]
    assert report.exit_code == 0


def test_grouped_sorted_and_counted():
    findings = [
        _finding("pkg/b.py", 3, "PY008"),
        _finding("pkg/a.py", 10, "PY001"),
        _finding("pkg/a.py", 2, "PY012"),
        _finding("pkg/a.py", 2, "PY001", column=5),
    ]
    report = build_report("/src", ["pkg/a.py", "pkg/b.py", "pkg/c.py"], findings)
    assert report.exit_code == 1
    assert report.total == 4
    assert report.summary == {"PY001": 2, "PY008": 1, "PY012": 1}
    assert list(report.summary) == ["PY001", "PY008", "PY012"]
    assert [fr.path for fr in report.files] == ["pkg/a.py", "pkg/b.py", "pkg/c.py"]
    a = report.for_path("pkg/a.py")
    assert [(f.location.line, f.location.column, f.rule_id) for f in a] == [
        (2, 1, "PY012"),
        (2, 5, "PY001"),
        (10, 1, "PY001"),
    ]
    assert report.for_path("pkg/c.py") == []
    assert report.for_path("missing.py") == []
    assert len(report.findings) == 4


def test_counts_match_findings():
    findings = [_finding("a.py", i, f"PY00{i % 3 + 1}") for i in range(1, 10)]
    report = build_report("/src", ["a.py"], findings)
    assert sum(report.summary.values()) == report.total == len(report.findings)


def test_input_order_does_not_matter():
    findings = [_finding("b.py", 1), _finding("a.py", 4), _finding("a.py", 1, "PY002")]
    one = build_report("/src", ["a.py", "b.py"], findings)
    two = build_report("/src", ["b.py", "a.py"], list(reversed(findings)))
    assert render_json(one) == render_json(two)


def test_scanned_paths_may_be_a_generator():
    report = build_report("/src", (p for p in ["a.py", "b.py"]), [_finding("a.py", 1)])
    assert report.files_scanned == 2
    assert len(report.files) == 2


def test_finding_from_error():
    finding = finding_from_error(ParseError(Path("/src/x.py"), "invalid syntax", line=4, column=9), "x.py")
    assert finding.rule_id == "parse-error"
    assert finding.severity == "error"
    assert (finding.location.path, finding.location.line, finding.location.column) == ("x.py", 4, 9)

    timeout = finding_from_error(AnalysisTimeout(Path("/src/y.py"), "analysis exceeded 1s"), "y.py")
    assert timeout.rule_id == "analysis-timeout"
    assert timeout.location.line == 1


def test_render_json():
    report = build_report("/src", ["a.py"], [_finding("a.py", 1)])
    data = json.loads(render_json(report))
    assert data["root"] == "/src"
    assert data["files_scanned"] == 1
    assert data["summary"] == {"PY001": 1}
    assert data["files"][0]["findings"][0]["location"]["line"] == 1
    assert data["files"][0]["findings"][0]["severity"] == "warning"


def test_render_text():
    report = build_report("/src", ["a.py", "b.py"], [_finding("a.py", 3, "PY012"), _finding("a.py", 1)])
    assert render_text(report) == (
        "a.py:1:1: WARNING [PY001] PY001 at 1\n"
        "a.py:3:1: WARNING [PY012] PY012 at 3\n"
        "\n"
        "2 findings in 1 file (2 scanned)\n"
        "  PY001: 1\n"
        "  PY012: 1\n"
    )


def test_print_report_rich():
    console = Console(record=True, width=120, color_system=None)
    finding = Finding(
        rule_id="PY003",
        message="Optional[...] used in an annotation: 'Optional[...]' annotation",
        location=Location(path="a.py", line=2, column=10, snippet="Optional[int]"),
    )
    report = build_report("/src", ["a.py", "b.py"], [finding])
    print_report(report, console=console, verbose=True, remediations={"PY003": "Use X | None."})
    out = console.export_text()
    assert "a.py" in out
    assert "Optional[int]" in out
    assert "Use X | None." in out
    assert "PY003" in out


def test_print_report_clean():
    console = Console(record=True, width=120, color_system=None)
    print_report(build_report("/src", ["a.py"], []), console=console)
    assert "No outdated patterns found" in console.export_text()
