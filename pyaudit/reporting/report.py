# Audit report model and builder: group findings per file, count them per
# rule, and serialize to JSON or grep-like text.

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from pyaudit.errors import FileAuditError
from pyaudit.findings.models import Finding, Location


class FileReport(BaseModel):
    """Findings for one file, ordered by source position."""

    model_config = ConfigDict(frozen=True)

    path: str
    findings: list[Finding] = Field(default_factory=list)


class AuditReport(BaseModel):
    """
    The result of one audit run.

    Entirely determined by the rules and the files audited: files are sorted
    by path, findings by position, summary keys by rule id.
    """

    model_config = ConfigDict(frozen=True)

    root: str
    files_scanned: int
    total: int
    summary: dict[str, int]
    files: list[FileReport]

    @property
    def findings(self) -> list[Finding]:
        return [f for fr in self.files for f in fr.findings]

    @property
    def is_clean(self) -> bool:
        return self.total == 0

    @property
    def exit_code(self) -> int:
        """0 when nothing was found, 1 otherwise."""
        return 0 if self.is_clean else 1

    def for_path(self, path: str) -> list[Finding]:
        for fr in self.files:
            if fr.path == path:
                return list(fr.findings)
        return []


def finding_from_error(error: FileAuditError, display_path: str) -> Finding:
    """Turn a per-file/per-subtree problem into its report entry."""
    return Finding(
        rule_id=error.rule_id,
        message=error.message,
        location=Location(path=display_path, line=error.line, column=error.column),
        severity="error",
    )


def build_report(root: str, scanned_paths: Iterable[str], findings: Iterable[Finding]) -> AuditReport:
    """
    Aggregate findings into an AuditReport.

    Every scanned path gets a FileReport, even when clean; paths that only
    appear in findings (e.g. a skipped symlink) are added too.
    """
    scanned = set(scanned_paths)
    by_path: dict[str, list[Finding]] = defaultdict(list)
    for path in scanned:
        by_path.setdefault(path, [])
    all_findings = list(findings)
    for finding in all_findings:
        by_path[finding.location.path].append(finding)

    files = [
        FileReport(path=path, findings=sorted(items, key=Finding.sort_key))
        for path, items in sorted(by_path.items())
    ]
    counts = Counter(f.rule_id for f in all_findings)
    return AuditReport(
        root=root,
        files_scanned=len(scanned),
        total=len(all_findings),
        summary=dict(sorted(counts.items())),
        files=files,
    )


def render_json(report: AuditReport) -> str:
    return report.model_dump_json(indent=2) + "\n"


def render_text(report: AuditReport) -> str:
    """Grep-like output: ``path:line:col: SEVERITY [rule] message`` plus a summary."""
    if report.is_clean:
        return f"No findings ({report.files_scanned} file(s) scanned).\n"

    lines: list[str] = []
    for fr in report.files:
        for f in fr.findings:
            loc = f.location
            lines.append(f"{loc.path}:{loc.line}:{loc.column}: {f.severity.upper()} [{f.rule_id}] {f.message}")

    files_with = sum(1 for fr in report.files if fr.findings)
    lines.append("")
    lines.append(
        f"{report.total} finding{'s' if report.total != 1 else ''} in {files_with} "
        f"file{'s' if files_with != 1 else ''} ({report.files_scanned} scanned)"
    )
    for rule_id, count in report.summary.items():
        lines.append(f"  {rule_id}: {count}")
    return "\n".join(lines) + "\n"
