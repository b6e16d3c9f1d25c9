# Exception handler detection: bare ``except:`` clauses, optionally also
# handlers naming over-broad exception types.

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from pydantic import Field

from pyaudit.context import dotted_name
from pyaudit.rules.base import Detector, DetectorParams, Hit

if TYPE_CHECKING:
    from pyaudit.context import FileFacts


class ExceptHandlerParams(DetectorParams):
    bare: bool = True
    names: list[str] = Field(default_factory=list)


class ExceptHandlerDetector(Detector):
    kind = "except_handler"
    Params = ExceptHandlerParams

    def find(self, facts: FileFacts) -> Iterator[Hit]:
        names = set(self.params.names)
        for node in facts.nodes("except_clause"):
            caught = [c for c in node.named_children if c.type not in ("block", "comment")]
            if not caught:
                if self.params.bare:
                    yield Hit(node, "bare 'except:'")
                continue
            if not names:
                continue
            name = dotted_name(facts, caught[0])
            if name is not None and (name in names or facts.resolve(name) in names):
                yield Hit(node, f"'except {name}'")
