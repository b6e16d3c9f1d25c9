# String formatting detection: ``"...".format(...)`` and ``"..." % args`` on
# string literals, both replaceable with f-strings.

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from pyaudit.rules.base import Detector, DetectorParams, Hit

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from pyaudit.context import FileFacts

_STRING_NODES = frozenset({"string", "concatenated_string"})


class StringFormatParams(DetectorParams):
    format_method: bool = True
    percent: bool = True


def _unwrap(node: TSNode | None) -> TSNode | None:
    while node is not None and node.type == "parenthesized_expression":
        node = next((c for c in node.named_children if c.type != "comment"), None)
    return node


def _is_text_literal(facts: FileFacts, node: TSNode | None) -> bool:
    """True for str literals; bytes literals have no f-string equivalent."""
    node = _unwrap(node)
    if node is None or node.type not in _STRING_NODES:
        return False
    first = node if node.type == "string" else node.named_children[0]
    prefix = facts.text(first).split('"', 1)[0].split("'", 1)[0]
    return "b" not in prefix.lower()


class StringFormatDetector(Detector):
    kind = "string_format"
    Params = StringFormatParams

    def _format_calls(self, facts: FileFacts) -> Iterator[Hit]:
        for node in facts.nodes("call"):
            func = node.child_by_field_name("function")
            if func is None or func.type != "attribute":
                continue
            attr = func.child_by_field_name("attribute")
            if attr is None or facts.text(attr) != "format":
                continue
            if _is_text_literal(facts, func.child_by_field_name("object")):
                yield Hit(node, "str.format() on a literal")

    def _percent_ops(self, facts: FileFacts) -> Iterator[Hit]:
        for node in facts.nodes("binary_operator"):
            op = node.child_by_field_name("operator")
            if op is None or op.type != "%":
                continue
            if _is_text_literal(facts, node.child_by_field_name("left")):
                yield Hit(node, "'%' formatting on a literal")

    def find(self, facts: FileFacts) -> Iterator[Hit]:
        hits: list[Hit] = []
        if self.params.format_method:
            hits.extend(self._format_calls(facts))
        if self.params.percent:
            hits.extend(self._percent_ops(facts))
        hits.sort(key=lambda h: h.node.start_byte)
        return iter(hits)
