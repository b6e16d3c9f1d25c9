# Audit pipeline: walk the tree, scan and match each file on a worker pool,
# and merge everything into one deterministic report.

from __future__ import annotations

import concurrent.futures
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from pyaudit.config import AuditConfig
from pyaudit.context import Deadline, create_facts, display_path_for
from pyaudit.errors import FileAuditError
from pyaudit.findings.models import Finding
from pyaudit.matcher import match_rules
from pyaudit.reporting.report import AuditReport, build_report, finding_from_error
from pyaudit.rules.base import Rule
from pyaudit.rules.registry import Registry, load_registry
from pyaudit.traversal import SourceWalker

logger = logging.getLogger(__name__)


def analyze_file(
    path: Path,
    rules: Iterable[Rule],
    *,
    root: Optional[Path] = None,
    timeout: Optional[float] = None,
) -> tuple[str, list[Finding]]:
    """
    Scan and match one file.

    Never raises for problems confined to the file: read errors, syntax errors
    and timeouts each come back as a single finding.

    Returns:
        (display path, findings in source order)
    """
    display = display_path_for(path, root)
    deadline = Deadline(path, timeout)
    try:
        facts = create_facts(path, root=root, deadline=deadline)
        return display, match_rules(rules, facts, deadline)
    except FileAuditError as e:
        logger.warning("%s: %s", display, e.message)
        return display, [finding_from_error(e, display)]


def _safe_analyze(path: Path, rules: list[Rule], root: Optional[Path], timeout: Optional[float]) -> tuple[str, list[Finding]]:
    try:
        return analyze_file(path, rules, root=root, timeout=timeout)
    except Exception as exc:
        display = display_path_for(path, root)
        logger.exception("Analysis failed on %s: %s", path, exc)
        return display, [finding_from_error(FileAuditError(path, f"internal error: {exc}"), display)]


def resolve_registry(config: AuditConfig, registry: Optional[Registry] = None) -> Registry:
    """Load the configured catalog, or narrow a given registry to config.rules."""
    if registry is None:
        return load_registry(config.catalog, config.rules)
    if config.rules:
        return registry.select(config.rules)
    return registry


def run_audit(
    target: Path,
    config: Optional[AuditConfig] = None,
    registry: Optional[Registry] = None,
) -> AuditReport:
    """
    Audit a file or directory tree and return the report.

    Files are processed concurrently (config.workers threads, default
    os.cpu_count()); the report is sorted after collection, so it does not
    depend on completion order.

    Raises:
        ConfigurationError: bad catalog or rule selection (before any scanning).
        FileNotFoundError: target does not exist.
    """
    config = config or AuditConfig()
    rules = resolve_registry(config, registry).rules

    target = target.resolve()
    if not target.exists():
        raise FileNotFoundError(f"Target does not exist: {target}")

    walker: Optional[SourceWalker] = None
    if target.is_file():
        root = target.parent
        paths: Iterable[Path] = [target]
    else:
        root = target
        walker = SourceWalker(
            target,
            extensions=config.extensions,
            exclude_paths=config.exclude_paths,
            ignore_dirs=set(config.ignore_dirs) if config.ignore_dirs is not None else None,
            follow_symlinks=config.follow_symlinks,
        )
        paths = walker

    workers = config.workers or os.cpu_count() or 1
    logger.info("Auditing %s with %d rule(s) on %d worker(s)", target, len(rules), workers)

    scanned: list[str] = []
    findings: list[Finding] = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(_safe_analyze, path, rules, root, config.timeout): path
            for path in paths
        }
        for future in concurrent.futures.as_completed(futures):
            display, file_findings = future.result()
            scanned.append(display)
            findings.extend(file_findings)

    if walker is not None:
        for error in walker.errors:
            findings.append(finding_from_error(error, display_path_for(error.path, root)))

    report = build_report(str(target), scanned, findings)
    logger.info(
        "Audit complete: %d finding(s) in %d file(s)",
        report.total,
        report.files_scanned,
    )
    return report
