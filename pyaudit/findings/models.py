# Pydantic data models for audit findings: Finding, Location, Severity.

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["error", "warning", "info"]

SEVERITY_ORDER: dict[str, int] = {"error": 0, "warning": 1, "info": 2}


class Location(BaseModel):
    """Where in the source a finding was reported (file, line, column)."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="POSIX path relative to the audit root")
    line: int = Field(..., ge=1, description="1-based line number")
    column: int = Field(..., ge=1, description="1-based column number")
    end_line: Optional[int] = Field(None, ge=1)
    end_column: Optional[int] = Field(None, ge=1)
    snippet: Optional[str] = None


class Finding(BaseModel):
    """A single occurrence of an outdated pattern (e.g. ``from typing import List`` at line 3)."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    message: str
    location: Location
    severity: Severity = "warning"

    def sort_key(self) -> tuple:
        loc = self.location
        return (
            loc.line,
            loc.column,
            self.rule_id,
            loc.end_line or 0,
            loc.end_column or 0,
            self.message,
        )
