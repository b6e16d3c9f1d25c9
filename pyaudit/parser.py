# Tree-sitter setup and parsing: turn Python source into syntax trees.

import logging
import threading
from typing import Optional

import tree_sitter
from tree_sitter import Language
from tree_sitter import Node as TSNode
from tree_sitter_python import language as _python_language_capsule

logger = logging.getLogger(__name__)

# Python grammar: wrap the tree-sitter-python capsule for use with tree_sitter.Parser
_PYTHON_LANGUAGE = Language(_python_language_capsule())

_local = threading.local()


def get_python_language() -> Language:
    """Return the Tree-sitter Language object for Python."""
    return _PYTHON_LANGUAGE


def create_parser() -> tree_sitter.Parser:
    """Create and return a Tree-sitter Parser configured for Python."""
    return tree_sitter.Parser(_PYTHON_LANGUAGE)


def thread_parser() -> tree_sitter.Parser:
    """
    Return the parser owned by the calling thread, creating it on first use.

    Parser instances are not safe to share between threads, so each worker in
    the audit pool gets its own.
    """
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = create_parser()
        _local.parser = parser
    return parser


def parse_bytes(
    source: bytes,
    parser: Optional[tree_sitter.Parser] = None,
) -> tree_sitter.Tree:
    """
    Parse Python source bytes into a syntax tree.

    Args:
        source: UTF-8 encoded Python source code.
        parser: Optional parser instance; if None, a new one is created.

    Returns:
        The parse tree. Check tree.root_node.has_error for syntax errors.
    """
    if parser is None:
        parser = create_parser()
    tree = parser.parse(source)
    if tree.root_node.has_error:
        logger.debug("Parse completed with errors: root=%s", tree.root_node.type)
    else:
        logger.debug("Parse succeeded: root=%s", tree.root_node.type)
    return tree


def first_error_node(root: TSNode) -> Optional[TSNode]:
    """
    Return the first ERROR or MISSING node in document order, or None.

    Only subtrees flagged with has_error are descended, so clean regions of a
    large file are skipped.
    """
    if not root.has_error:
        return None
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        # reversed so the leftmost child is popped first
        stack.extend(c for c in reversed(node.children) if c.has_error or c.is_missing)
    return root
