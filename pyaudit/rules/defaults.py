# Default argument detection: mutable literals ([] / {} / set()) used as
# parameter defaults, which are shared between calls.

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from pydantic import Field, field_validator

from pyaudit.context import dotted_name
from pyaudit.rules.base import Detector, DetectorParams, Hit

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from pyaudit.context import FileFacts

_LITERAL_NODES = {
    "list": ("list", "list_comprehension"),
    "dict": ("dictionary", "dictionary_comprehension"),
    "set": ("set", "set_comprehension"),
}


class DefaultArgumentParams(DetectorParams):
    types: list[str] = Field(default_factory=lambda: ["list", "dict", "set"], min_length=1)
    # Constructor calls such as list() / collections.defaultdict(list).
    constructors: list[str] = Field(default_factory=lambda: ["list", "dict", "set"])

    @field_validator("types")
    @classmethod
    def _known_types(cls, value: list[str]) -> list[str]:
        unknown = sorted(set(value) - set(_LITERAL_NODES))
        if unknown:
            raise ValueError(f"unsupported literal types: {unknown}")
        return value


class DefaultArgumentDetector(Detector):
    kind = "default_argument"
    Params = DefaultArgumentParams

    def __init__(self, params: DefaultArgumentParams) -> None:
        super().__init__(params)
        self._literal_nodes = frozenset(n for t in params.types for n in _LITERAL_NODES[t])

    def _is_mutable(self, facts: FileFacts, value: TSNode) -> bool:
        if value.type in self._literal_nodes:
            return True
        if value.type == "call":
            name = dotted_name(facts, value.child_by_field_name("function"))
            return name is not None and name in self.params.constructors
        return False

    def find(self, facts: FileFacts) -> Iterator[Hit]:
        params = facts.nodes("default_parameter") + facts.nodes("typed_default_parameter")
        params.sort(key=lambda n: n.start_byte)
        for param in params:
            value = param.child_by_field_name("value")
            if value is not None and self._is_mutable(facts, value):
                name_node = param.child_by_field_name("name")
                name = facts.text(name_node) if name_node is not None else "?"
                yield Hit(value, f"mutable default for parameter '{name}'")
