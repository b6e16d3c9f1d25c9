# Import detection: flags legacy modules, or legacy names imported from a module.

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from pydantic import Field

from pyaudit.context import dotted_name
from pyaudit.rules.base import Detector, DetectorParams, Hit

if TYPE_CHECKING:
    from pyaudit.context import FileFacts


class ImportParams(DetectorParams):
    module: str = Field(..., min_length=1)
    # Empty: any import of the module (or its submodules) matches.
    names: list[str] = Field(default_factory=list)


class ImportDetector(Detector):
    """
    Matches ``import module`` / ``from module import name`` statements.

    With ``names`` set, only ``from module import <name>`` for one of those
    names matches, and each offending name is its own hit. Plain
    ``import module`` is left to usage-based rules in that case.
    """

    kind = "import"
    Params = ImportParams

    def _module_matches(self, name: str | None, *, submodules: bool) -> bool:
        if not name:
            return False
        module = self.params.module
        return name == module or (submodules and name.startswith(module + "."))

    def find(self, facts: FileFacts) -> Iterator[Hit]:
        params = self.params
        wanted = set(params.names)

        if not wanted:
            for stmt in facts.nodes("import_statement"):
                for child in stmt.children_by_field_name("name"):
                    target = child.child_by_field_name("name") if child.type == "aliased_import" else child
                    name = dotted_name(facts, target)
                    if self._module_matches(name, submodules=True):
                        yield Hit(child, f"import of '{name}'")

        for stmt in facts.nodes("import_from_statement"):
            module_node = stmt.child_by_field_name("module_name")
            if module_node is None or module_node.type != "dotted_name":
                continue
            module = dotted_name(facts, module_node)
            if not wanted:
                if self._module_matches(module, submodules=True):
                    yield Hit(stmt, f"import from '{module}'")
                continue
            if not self._module_matches(module, submodules=False):
                continue
            for child in stmt.children_by_field_name("name"):
                target = child.child_by_field_name("name") if child.type == "aliased_import" else child
                name = dotted_name(facts, target)
                if name in wanted:
                    yield Hit(child, f"'{name}' imported from {module}")
