# Rule and detector interfaces. A Rule is one catalog entry bound to the
# Detector that evaluates its predicate; concrete detectors (imports,
# decorators, calls, ...) subclass Detector and implement find().

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Iterator, NamedTuple

from pydantic import BaseModel, ConfigDict, ValidationError

from pyaudit.errors import ConfigurationError
from pyaudit.findings.models import Severity

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from pyaudit.context import FileFacts


class Hit(NamedTuple):
    """A detector match: the offending node and a short description of it."""

    node: TSNode
    detail: str


class DetectorParams(BaseModel):
    """Base for per-kind predicate parameters; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class Detector(ABC):
    """
    Abstract base class for structural predicates over FileFacts.

    Subclasses must define:
    - kind: str - the fact kind named by catalog entries (e.g. "import")
    - Params: DetectorParams subclass describing the accepted parameters
    - find(facts) -> Iterator[Hit] - yield every matching node in one file

    Detectors only inspect syntax nodes, never comments or string contents,
    and never execute the scanned code.
    """

    kind: ClassVar[str]
    Params: ClassVar[type[DetectorParams]] = DetectorParams

    def __init__(self, params: DetectorParams) -> None:
        self.params = params

    @classmethod
    def from_spec(cls, rule_id: str, spec: dict[str, Any]) -> "Detector":
        """
        Build a detector from a catalog ``detect`` mapping (minus its ``kind``).

        Raises:
            ConfigurationError: if the parameters do not validate.
        """
        try:
            params = cls.Params.model_validate(spec)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or cls.kind}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(
                f"rule {rule_id}: invalid parameters for fact kind {cls.kind!r}: {problems}"
            ) from e
        return cls(params)

    @abstractmethod
    def find(self, facts: FileFacts) -> Iterator[Hit]:
        """
        Yield a Hit for each construct in this file that the predicate matches.

        Yields nothing if the file is clean.
        """
        ...


@dataclass(frozen=True)
class Rule:
    """
    One detection rule: an outdated construct and its modern replacement.

    Created by the registry when the catalog is loaded; immutable afterwards.
    """

    id: str
    name: str
    description: str
    recommendation: str
    predicate: Detector
    severity: Severity = "warning"

    @property
    def kind(self) -> str:
        return self.predicate.kind

    def find(self, facts: FileFacts) -> Iterator[Hit]:
        return self.predicate.find(facts)
