# Decorator detection: flags functions decorated with legacy decorators,
# e.g. Pydantic v1 @validator / @root_validator.

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from pydantic import Field

from pyaudit.context import dotted_name
from pyaudit.rules.base import Detector, DetectorParams, Hit

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from pyaudit.context import FileFacts


class DecoratorParams(DetectorParams):
    names: list[str] = Field(..., min_length=1)


def _decorator_target(node: TSNode) -> TSNode | None:
    """The expression after '@', unwrapped from a call: @validator("x") -> validator."""
    expr = next((c for c in node.named_children if c.type != "comment"), None)
    if expr is not None and expr.type == "call":
        return expr.child_by_field_name("function")
    return expr


class DecoratorDetector(Detector):
    """Matches ``@name`` and ``@name(...)`` decorators by dotted name (aliases resolved)."""

    kind = "decorator"
    Params = DecoratorParams

    def find(self, facts: FileFacts) -> Iterator[Hit]:
        wanted = set(self.params.names)
        for node in facts.nodes("decorator"):
            name = dotted_name(facts, _decorator_target(node))
            if name is None:
                continue
            if name in wanted or facts.resolve(name) in wanted:
                yield Hit(node, f"decorator '@{name}'")
