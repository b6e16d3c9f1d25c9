# Pattern registry: loads the rule catalog (YAML), validates each entry and
# binds it to the detector for its fact kind.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pyaudit.errors import ConfigurationError
from pyaudit.findings.models import Severity
from pyaudit.rules.annotations import AnnotationDetector
from pyaudit.rules.base import Detector, Rule
from pyaudit.rules.calls import CallDetector
from pyaudit.rules.classes import NestedClassDetector
from pyaudit.rules.decorators import DecoratorDetector
from pyaudit.rules.defaults import DefaultArgumentDetector
from pyaudit.rules.exceptions import ExceptHandlerDetector
from pyaudit.rules.imports import ImportDetector
from pyaudit.rules.strings import StringFormatDetector

logger = logging.getLogger(__name__)

DEFAULT_CATALOG = Path(__file__).with_name("catalog.yaml")

DETECTORS: dict[str, type[Detector]] = {
    cls.kind: cls
    for cls in (
        ImportDetector,
        DecoratorDetector,
        CallDetector,
        AnnotationDetector,
        NestedClassDetector,
        ExceptHandlerDetector,
        DefaultArgumentDetector,
        StringFormatDetector,
    )
}


class RuleSpec(BaseModel):
    """Schema of one catalog entry."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., pattern=r"^[A-Za-z][A-Za-z0-9_-]*$")
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    recommendation: str = Field(..., min_length=1)
    severity: Severity = "warning"
    detect: dict[str, Any]


def supported_kinds() -> list[str]:
    return sorted(DETECTORS)


def build_rule(spec: RuleSpec) -> Rule:
    """
    Bind a validated catalog entry to its detector.

    Raises:
        ConfigurationError: unknown fact kind or invalid detector parameters.
    """
    params = dict(spec.detect)
    kind = params.pop("kind", None)
    detector_cls = DETECTORS.get(kind) if isinstance(kind, str) else None
    if detector_cls is None:
        raise ConfigurationError(
            f"rule {spec.id}: unsupported fact kind {kind!r} "
            f"(supported: {', '.join(supported_kinds())})"
        )
    return Rule(
        id=spec.id,
        name=spec.name,
        description=spec.description,
        recommendation=spec.recommendation,
        severity=spec.severity,
        predicate=detector_cls.from_spec(spec.id, params),
    )


class Registry:
    """
    Immutable, ordered collection of rules keyed by identifier.

    Raises ConfigurationError on construction if two rules share an id.
    """

    def __init__(self, rules: Iterable[Rule]) -> None:
        by_id: dict[str, Rule] = {}
        for rule in rules:
            if rule.id in by_id:
                raise ConfigurationError(f"duplicate rule identifier: {rule.id}")
            by_id[rule.id] = rule
        self._rules = by_id

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules.values())

    def ids(self) -> list[str]:
        return list(self._rules)

    def get(self, rule_id: str) -> Rule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise ConfigurationError(f"unknown rule identifier: {rule_id}") from None

    def select(self, rule_ids: Sequence[str]) -> "Registry":
        """Return a registry holding only the given ids (catalog order kept)."""
        unknown = sorted({r for r in rule_ids if r not in self})
        if unknown:
            raise ConfigurationError(f"unknown rule identifier(s): {', '.join(unknown)}")
        wanted = set(rule_ids)
        return Registry(r for r in self._rules.values() if r.id in wanted)

    def remediations(self) -> dict[str, str]:
        return {r.id: r.recommendation for r in self._rules.values()}


def read_catalog(path: Path) -> list[RuleSpec]:
    """Read and schema-validate a YAML rule catalog (a list of entries)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read rule catalog {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in rule catalog {path}: {e}") from e

    if isinstance(data, dict) and "rules" in data:
        data = data["rules"]
    if not isinstance(data, list):
        raise ConfigurationError(f"rule catalog {path} must be a list of rules")

    specs: list[RuleSpec] = []
    for i, entry in enumerate(data):
        try:
            specs.append(RuleSpec.model_validate(entry))
        except ValidationError as e:
            raise ConfigurationError(f"rule catalog {path}, entry {i}: {e}") from e
    return specs


def load_registry(
    path: Optional[Path] = None,
    enabled: Optional[Sequence[str]] = None,
) -> Registry:
    """
    Load the rule catalog into a Registry.

    Args:
        path: Catalog file; defaults to the packaged catalog.yaml.
        enabled: Rule ids to keep; None or empty keeps every rule.

    Raises:
        ConfigurationError: duplicate ids, unsupported fact kinds, invalid
            parameters, unreadable catalog, or unknown enabled ids.
    """
    path = path or DEFAULT_CATALOG
    registry = Registry(build_rule(spec) for spec in read_catalog(path))
    logger.info("Loaded %d rule(s) from %s", len(registry), path)
    if enabled:
        registry = registry.select(enabled)
        logger.debug("Enabled rules: %s", ", ".join(registry.ids()))
    return registry
