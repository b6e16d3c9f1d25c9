# Rule matcher: evaluate every rule against one file's facts and turn the
# detector hits into findings.

from __future__ import annotations

import logging
from typing import Iterable, Optional

from pyaudit.context import Deadline, FileFacts, get_end_line_col, get_line_col
from pyaudit.findings.models import Finding, Location
from pyaudit.rules.base import Hit, Rule

logger = logging.getLogger(__name__)

SNIPPET_MAX = 120


def _snippet(facts: FileFacts, hit: Hit) -> str:
    text = facts.text(hit.node).strip()
    first = text.splitlines()[0] if text else ""
    if len(first) > SNIPPET_MAX:
        first = first[: SNIPPET_MAX - 3] + "..."
    return first


def to_finding(rule: Rule, facts: FileFacts, hit: Hit) -> Finding:
    line, col = get_line_col(hit.node)
    end_line, end_col = get_end_line_col(hit.node)
    return Finding(
        rule_id=rule.id,
        message=f"{rule.description}: {hit.detail}",
        location=Location(
            path=facts.display_path,
            line=line,
            column=col,
            end_line=end_line,
            end_column=end_col,
            snippet=_snippet(facts, hit),
        ),
        severity=rule.severity,
    )


def match_rules(
    rules: Iterable[Rule],
    facts: FileFacts,
    deadline: Optional[Deadline] = None,
) -> list[Finding]:
    """
    Run every rule against one file and return its findings in source order.

    Matches from different rules on overlapping spans are all kept. Ordering
    is (line, column, rule id, end position), so the result does not depend
    on rule order.

    Raises:
        AnalysisTimeout: if the deadline expires between hits.
    """
    findings: list[Finding] = []
    for rule in rules:
        for hit in rule.find(facts):
            if deadline is not None:
                deadline.check()
            findings.append(to_finding(rule, facts, hit))
        if deadline is not None:
            deadline.check()
    findings.sort(key=Finding.sort_key)
    logger.debug("%s: %d finding(s)", facts.display_path, len(findings))
    return findings
