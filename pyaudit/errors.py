# Exception hierarchy: fatal configuration errors and the per-file/per-subtree
# problems that the pipeline turns into report entries.

from __future__ import annotations

from pathlib import Path


class AuditError(Exception):
    """Base class for every error raised by pyaudit."""


class ConfigurationError(AuditError):
    """Bad rule catalog or audit configuration. Fatal: raised before scanning."""


class FileAuditError(AuditError):
    """
    A problem confined to one path.

    The pipeline never lets these escape; each one becomes a single finding
    under ``rule_id`` so the report shows what could not be audited.
    """

    rule_id = "internal-error"

    def __init__(self, path: Path, message: str, line: int = 1, column: int = 1) -> None:
        super().__init__(f"{path}:{line}:{column}: {message}")
        self.path = path
        self.message = message
        self.line = line
        self.column = column


class ParseError(FileAuditError):
    """The file has a syntax error; rules are not run on it."""

    rule_id = "parse-error"


class SourceReadError(FileAuditError):
    """The file could not be read."""

    rule_id = "read-error"


class CyclicPathError(FileAuditError):
    """A symlink leads back into one of its own ancestor directories."""

    rule_id = "cyclic-path"

    def __init__(self, path: Path, target: Path) -> None:
        super().__init__(path, f"symlink cycle: {path} -> {target}")
        self.target = target


class AnalysisTimeout(FileAuditError):
    """Per-file analysis exceeded its time budget."""

    rule_id = "analysis-timeout"
