# Annotation detection: flags subscripted legacy typing forms such as
# Optional[...] / Union[...] when they appear in type annotations.

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterator

from pydantic import Field

from pyaudit.context import dotted_name
from pyaudit.rules.base import Detector, DetectorParams, Hit

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from pyaudit.context import FileFacts

_WS = re.compile(r"\s+")

# Nodes that can never sit inside an annotation; stop climbing there.
_SCOPE_BOUNDARIES = frozenset({"block", "module", "lambda"})


class AnnotationParams(DetectorParams):
    names: list[str] = Field(..., min_length=1)


def in_annotation(node: TSNode) -> bool:
    """True if node sits inside a ``type`` node (parameter, return or variable annotation)."""
    parent = node.parent
    while parent is not None and parent.type not in _SCOPE_BOUNDARIES:
        if parent.type == "type":
            return True
        parent = parent.parent
    return False


def _subscript_head(facts: FileFacts, node: TSNode) -> str | None:
    if node.type == "subscript":
        head = node.child_by_field_name("value")
    else:
        # generic_type: <name> <type_parameter>
        head = next((c for c in node.children if c.type != "type_parameter"), None)
    if head is None:
        return None
    return dotted_name(facts, head) or _WS.sub("", facts.text(head))


class AnnotationDetector(Detector):
    """Matches ``Name[...]`` inside annotations where Name (alias-resolved) is listed."""

    kind = "annotation"
    Params = AnnotationParams

    def find(self, facts: FileFacts) -> Iterator[Hit]:
        wanted = set(self.params.names)
        candidates = facts.nodes("generic_type") + facts.nodes("subscript")
        candidates.sort(key=lambda n: n.start_byte)
        for node in candidates:
            name = _subscript_head(facts, node)
            if name is None or not (name in wanted or facts.resolve(name) in wanted):
                continue
            if in_annotation(node):
                yield Hit(node, f"'{name}[...]' annotation")
