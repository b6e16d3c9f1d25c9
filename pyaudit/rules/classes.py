# Nested class detection: flags an inner class (e.g. ``class Config:``) declared
# inside classes derived from given bases (e.g. Pydantic's BaseModel).

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from pydantic import Field

from pyaudit.context import dotted_name
from pyaudit.rules.base import Detector, DetectorParams, Hit

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from pyaudit.context import FileFacts


class NestedClassParams(DetectorParams):
    name: str = Field("Config", min_length=1)
    bases: list[str] = Field(..., min_length=1)


def base_names(facts: FileFacts, class_node: TSNode) -> list[str]:
    """Dotted names of a class's positional bases, each also in alias-resolved form."""
    supers = class_node.child_by_field_name("superclasses")
    if supers is None:
        return []
    names: list[str] = []
    for child in supers.named_children:
        name = dotted_name(facts, child)
        if name is None:
            continue
        names.append(name)
        resolved = facts.resolve(name)
        if resolved != name:
            names.append(resolved)
    return names


def _inner_classes(class_node: TSNode) -> Iterator[TSNode]:
    body = class_node.child_by_field_name("body")
    if body is None:
        return
    for stmt in body.named_children:
        if stmt.type == "decorated_definition":
            stmt = stmt.child_by_field_name("definition")
        if stmt is not None and stmt.type == "class_definition":
            yield stmt


class NestedClassDetector(Detector):
    """
    Matches ``class <name>:`` directly inside a class deriving from one of ``bases``.

    Derivation is followed through classes defined in the same file, so a
    ``class Base(BaseModel)`` / ``class User(Base)`` chain flags both.
    """

    kind = "nested_class"
    Params = NestedClassParams

    def _model_classes(self, facts: FileFacts) -> list[TSNode]:
        wanted = set(self.params.bases)
        classes = [
            (node, facts.text(node.child_by_field_name("name")), base_names(facts, node))
            for node in facts.nodes("class_definition")
            if node.child_by_field_name("name") is not None
        ]
        local_models: set[str] = set()
        models: set[int] = set()
        changed = True
        while changed:
            changed = False
            for node, name, bases in classes:
                if node.id in models:
                    continue
                if any(b in wanted or b in local_models for b in bases):
                    models.add(node.id)
                    local_models.add(name)
                    changed = True
        return [node for node, _, _ in classes if node.id in models]

    def find(self, facts: FileFacts) -> Iterator[Hit]:
        inner_name = self.params.name
        for model in self._model_classes(facts):
            model_name = facts.text(model.child_by_field_name("name"))
            for inner in _inner_classes(model):
                name_node = inner.child_by_field_name("name")
                if name_node is not None and facts.text(name_node) == inner_name:
                    yield Hit(inner, f"'class {inner_name}' inside model '{model_name}'")
