# Per-file analysis facts: path, source bytes, syntax tree, and the node-type
# index and import aliases that detectors query. Reading/parsing failures are
# raised as FileAuditError subclasses for the pipeline to report.

from __future__ import annotations

import ast
import logging
import time
from collections import defaultdict
from pathlib import Path
from typing import Iterator, Optional

from tree_sitter import Node as TSNode
from tree_sitter import Parser, Tree

from pyaudit.errors import AnalysisTimeout, ParseError, SourceReadError
from pyaudit.parser import first_error_node, parse_bytes, thread_parser

logger = logging.getLogger(__name__)

# How many nodes to visit between deadline checks.
_DEADLINE_STRIDE = 512


class Deadline:
    """Cooperative per-file time budget; check() raises AnalysisTimeout once expired."""

    def __init__(self, path: Path, seconds: Optional[float]) -> None:
        self.path = path
        self.seconds = seconds
        self._expires = time.monotonic() + seconds if seconds else None

    def expired(self) -> bool:
        return self._expires is not None and time.monotonic() > self._expires

    def check(self) -> None:
        if self.expired():
            raise AnalysisTimeout(self.path, f"analysis exceeded {self.seconds:g}s")


class FileFacts:
    """
    Per-file state for matching: path, raw source bytes, and syntax tree.

    Detectors use facts.nodes(type) to reach constructs without re-walking the
    tree, facts.text(node) for source spans, and facts.resolve(name) to expand
    import aliases. The index is built once on construction; afterwards the
    object is read-only.
    """

    def __init__(
        self,
        path: Path,
        source: bytes,
        tree: Tree,
        *,
        display_path: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> None:
        self.path = path
        self.display_path = display_path if display_path is not None else path.as_posix()
        self.source = source
        self.tree = tree
        self._index: dict[str, list[TSNode]] = defaultdict(list)
        self._build_index(deadline)
        self.aliases = _collect_aliases(self)

    @property
    def root_node(self) -> TSNode:
        """Convenience access to the tree root."""
        return self.tree.root_node

    @property
    def node_count(self) -> int:
        return sum(len(v) for v in self._index.values())

    def nodes(self, node_type: str) -> list[TSNode]:
        """All nodes of the given grammar type, in document order."""
        return self._index.get(node_type, [])

    def text(self, node: TSNode) -> str:
        return get_source_span(self, node)

    def resolve(self, dotted: str) -> str:
        """Expand the leading segment of a dotted name through the import aliases."""
        head, sep, rest = dotted.partition(".")
        target = self.aliases.get(head)
        if target is None:
            return dotted
        return f"{target}{sep}{rest}"

    def _build_index(self, deadline: Optional[Deadline]) -> None:
        for i, node in enumerate(walk(self.tree.root_node)):
            if deadline is not None and i % _DEADLINE_STRIDE == 0:
                deadline.check()
            self._index[node.type].append(node)


def walk(node: TSNode) -> Iterator[TSNode]:
    """Yield node and every descendant in document order (iterative DFS)."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def get_source_span(facts: FileFacts, node: TSNode) -> str:
    """
    Return the substring of facts.source for the given node's byte range.

    Decodes with errors="replace" so bad UTF-8 does not crash.
    """
    return facts.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def get_line_col(node: TSNode, one_based: bool = True) -> tuple[int, int]:
    """
    Return (line, column) for the node's start position.

    Tree-sitter uses 0-based (row, col). If one_based=True (default),
    returns 1-based line and column for display.
    """
    row, col = node.start_point
    if one_based:
        return row + 1, col + 1
    return row, col


def get_end_line_col(node: TSNode) -> tuple[int, int]:
    """1-based (line, column) of the node's end position."""
    row, col = node.end_point
    return row + 1, col + 1


def dotted_name(facts: FileFacts, node: Optional[TSNode]) -> Optional[str]:
    """
    Return "a.b.c" for identifier/attribute/dotted_name chains, else None.

    Calls, subscripts and literals anywhere in the chain make it unnamed:
    ``get_model().parse_obj`` has no dotted name.
    """
    if node is None:
        return None
    if node.type == "identifier":
        return facts.text(node)
    if node.type == "dotted_name":
        return ".".join(facts.text(c) for c in node.named_children if c.type == "identifier")
    if node.type == "attribute":
        base = dotted_name(facts, node.child_by_field_name("object"))
        attr = node.child_by_field_name("attribute")
        if base is None or attr is None:
            return None
        return f"{base}.{facts.text(attr)}"
    return None


def _collect_aliases(facts: FileFacts) -> dict[str, str]:
    """
    Map local names bound by imports to their qualified targets.

    ``import numpy as np`` gives {"np": "numpy"} and
    ``from datetime import datetime as dt`` gives {"dt": "datetime.datetime"}.
    Plain ``import os.path`` binds nothing new and is left out.
    """
    aliases: dict[str, str] = {}
    for stmt in facts.nodes("import_statement"):
        for child in stmt.children_by_field_name("name"):
            if child.type == "aliased_import":
                target = dotted_name(facts, child.child_by_field_name("name"))
                alias = child.child_by_field_name("alias")
                if target and alias is not None:
                    aliases[facts.text(alias)] = target
    for stmt in facts.nodes("import_from_statement"):
        module = stmt.child_by_field_name("module_name")
        if module is None or module.type != "dotted_name":
            continue
        module_name = dotted_name(facts, module)
        for child in stmt.children_by_field_name("name"):
            if child.type == "aliased_import":
                name = dotted_name(facts, child.child_by_field_name("name"))
                alias_node = child.child_by_field_name("alias")
                local = facts.text(alias_node) if alias_node is not None else name
            else:
                name = dotted_name(facts, child)
                local = name
            if name and local and local != f"{module_name}.{name}":
                aliases[local] = f"{module_name}.{name}"
    return aliases


def create_facts(
    path: Path,
    *,
    root: Optional[Path] = None,
    parser: Optional[Parser] = None,
    deadline: Optional[Deadline] = None,
) -> FileFacts:
    """
    Read a Python file and parse it into FileFacts.

    - Unreadable file (permission, missing): raises SourceReadError.
    - Syntax errors: raises ParseError located at the first ERROR/MISSING node,
      or where the interpreter rejects source that tree-sitter accepted
      (Python 2 `print "x"`, `except E, e:`).
    - Success: returns FileFacts and logs the node count.

    Args:
        path: File to read.
        root: Audit root; the display path is made relative to it when given.
        parser: Parser to use; defaults to the calling thread's parser.
        deadline: Optional per-file time budget checked while indexing.
    """
    if parser is None:
        parser = thread_parser()
    display = display_path_for(path, root)

    try:
        source = path.read_bytes()
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        raise SourceReadError(path, f"cannot read file: {e.strerror or e}") from e

    tree = parse_bytes(source, parser=parser)
    error_node = first_error_node(tree.root_node)
    if error_node is not None:
        line, col = get_line_col(error_node)
        logger.warning("File %s has a syntax error at %d:%d", path, line, col)
        detail = "missing " + error_node.type if error_node.is_missing else "invalid syntax"
        raise ParseError(path, detail, line=line, column=col)
    check_syntax(path, source)

    facts = FileFacts(path, source, tree, display_path=display, deadline=deadline)
    logger.info("Parsed %s: %d nodes", display, facts.node_count)
    return facts


def display_path_for(path: Path, root: Optional[Path]) -> str:
    if root is None:
        return path.as_posix()
    try:
        rel = path.relative_to(root)
    except ValueError:
        return path.as_posix()
    if rel == Path("."):
        return path.name
    return rel.as_posix()


def check_syntax(path: Path, source: bytes) -> None:
    """
    Raise ParseError if the interpreter's own parser rejects the source.

    tree-sitter-python still accepts some Python 2 statements, so a tree
    without ERROR nodes is not proof that the file compiles.
    """
    try:
        ast.parse(source, filename=str(path))
    except (SyntaxError, ValueError) as e:
        line = getattr(e, "lineno", None) or 1
        col = getattr(e, "offset", None) or 1
        message = getattr(e, "msg", None) or str(e)
        logger.warning("File %s has a syntax error at %d:%d: %s", path, line, col, message)
        raise ParseError(path, message, line=line, column=col) from e
