# Call detection: flags calls to legacy functions (by dotted name, with import
# aliases resolved) or to legacy method names on any receiver.

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from pydantic import Field, model_validator

from pyaudit.context import dotted_name
from pyaudit.rules.base import Detector, DetectorParams, Hit

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from pyaudit.context import FileFacts


class CallParams(DetectorParams):
    names: list[str] = Field(default_factory=list)
    methods: list[str] = Field(default_factory=list)
    min_args: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _needs_a_target(self) -> "CallParams":
        if not self.names and not self.methods:
            raise ValueError("at least one of 'names' or 'methods' is required")
        return self


def count_arguments(call: TSNode) -> int:
    args = call.child_by_field_name("arguments")
    if args is None:
        return 0
    if args.type == "generator_expression":
        return 1
    return sum(1 for c in args.named_children if c.type != "comment")


class CallDetector(Detector):
    """
    Matches call expressions.

    ``names`` are dotted callee names (``os.path.join``); ``methods`` are bare
    attribute names matched on any receiver (``.parse_obj``); ``min_args``
    requires at least that many arguments (``super(Cls, self)``).
    """

    kind = "call"
    Params = CallParams

    def find(self, facts: FileFacts) -> Iterator[Hit]:
        names = set(self.params.names)
        methods = set(self.params.methods)
        min_args = self.params.min_args

        for node in facts.nodes("call"):
            func = node.child_by_field_name("function")
            if func is None:
                continue
            detail = None
            name = dotted_name(facts, func)
            if name is not None and names:
                resolved = facts.resolve(name)
                if name in names or resolved in names:
                    detail = f"call to '{name}()'"
            if detail is None and methods and func.type == "attribute":
                attr = func.child_by_field_name("attribute")
                if attr is not None and facts.text(attr) in methods:
                    detail = f"call to '.{facts.text(attr)}()'"
            if detail is None:
                continue
            if count_arguments(node) < min_args:
                continue
            yield Hit(node, detail)
