"""Tests for pyaudit.context: FileFacts, create_facts, dotted names and aliases."""

from pathlib import Path

import pytest

from pyaudit.context import (
    Deadline,
    FileFacts,
    create_facts,
    display_path_for,
    dotted_name,
    get_line_col,
    get_source_span,
)
from pyaudit.errors import AnalysisTimeout, ParseError, SourceReadError
from pyaudit.parser import parse_bytes


def _facts(source: bytes) -> FileFacts:
    return FileFacts(Path("mod.py"), source, parse_bytes(source))


def test_create_facts_valid_file(tmp_path):
    py_file = tmp_path / "pkg" / "main.py"
    py_file.parent.mkdir()
    py_file.write_bytes(b"def main():\n    return 0\n")
    facts = create_facts(py_file, root=tmp_path)
    assert facts.path == py_file
    assert facts.display_path == "pkg/main.py"
    assert facts.source == b"def main():\n    return 0\n"
    assert len(facts.nodes("function_definition")) == 1


def test_create_facts_nonexistent_raises_read_error():
    with pytest.raises(SourceReadError) as exc:
        create_facts(Path("/nonexistent/file.py"))
    assert exc.value.rule_id == "read-error"


def test_create_facts_syntax_error_raises_parse_error(tmp_path):
    py_file = tmp_path / "bad.py"
    py_file.write_bytes(b"import os\n\ndef broken(:\n    pass\n")
    with pytest.raises(ParseError) as exc:
        create_facts(py_file)
    assert exc.value.rule_id == "parse-error"
    assert exc.value.line >= 3


def test_create_facts_rejects_python2_print(tmp_path):
    py_file = tmp_path / "legacy.py"
    py_file.write_bytes(b'print "hello"\n')
    with pytest.raises(ParseError) as exc:
        create_facts(py_file)
    assert exc.value.rule_id == "parse-error"
    assert exc.value.line == 1


def test_create_facts_rejects_python2_except_clause(tmp_path):
    py_file = tmp_path / "legacy.py"
    py_file.write_bytes(b"try:\n    pass\nexcept ValueError, e:\n    pass\n")
    with pytest.raises(ParseError) as exc:
        create_facts(py_file)
    assert exc.value.line == 3


def test_nodes_are_in_document_order():
    facts = _facts(b"a()\nb()\nc()\n")
    names = [facts.text(n.child_by_field_name("function")) for n in facts.nodes("call")]
    assert names == ["a", "b", "c"]


def test_nodes_unknown_type_is_empty():
    facts = _facts(b"x = 1\n")
    assert facts.nodes("class_definition") == []


def test_get_source_span_and_line_col():
    facts = _facts(b"x = 1\ny = foo(2)\n")
    call = facts.nodes("call")[0]
    assert get_source_span(facts, call) == "foo(2)"
    assert get_line_col(call) == (2, 5)
    assert get_line_col(call, one_based=False) == (1, 4)


def test_dotted_name_for_attribute_chain():
    facts = _facts(b"os.path.join('a', 'b')\n")
    func = facts.nodes("call")[0].child_by_field_name("function")
    assert dotted_name(facts, func) == "os.path.join"


def test_dotted_name_none_through_call():
    facts = _facts(b"get_model().parse_obj(data)\n")
    outer = facts.nodes("call")[0]
    assert dotted_name(facts, outer.child_by_field_name("function")) is None


def test_aliases_from_imports():
    facts = _facts(
        b"import numpy as np\n"
        b"import os.path\n"
        b"from datetime import datetime as dt\n"
        b"from typing import List\n"
    )
    assert facts.aliases["np"] == "numpy"
    assert facts.aliases["dt"] == "datetime.datetime"
    assert facts.aliases["List"] == "typing.List"
    assert "os" not in facts.aliases


def test_resolve_expands_leading_segment():
    facts = _facts(b"import datetime as dt\n")
    assert facts.resolve("dt.datetime.utcnow") == "datetime.datetime.utcnow"
    assert facts.resolve("other.thing") == "other.thing"


def test_display_path_for():
    root = Path("/project")
    assert display_path_for(Path("/project/a/b.py"), root) == "a/b.py"
    assert display_path_for(Path("/elsewhere/c.py"), root) == "/elsewhere/c.py"
    assert display_path_for(Path("/project/x.py"), None) == "/project/x.py"


def test_deadline_disabled():
    deadline = Deadline(Path("x.py"), None)
    assert not deadline.expired()
    deadline.check()


def test_deadline_expired_raises():
    deadline = Deadline(Path("x.py"), 1e-9)
    with pytest.raises(AnalysisTimeout):
        # spin until the clock moves past the budget
        while True:
            deadline.check()


def test_index_checks_deadline():
    deadline = Deadline(Path("x.py"), 1e-9)
    source = b"x = 1\n" * 50
    tree = parse_bytes(source)
    with pytest.raises(AnalysisTimeout):
        FileFacts(Path("x.py"), source, tree, deadline=deadline)
