"""Pytest fixtures."""

from pathlib import Path

import pytest

from pyaudit.context import FileFacts
from pyaudit.parser import create_parser, parse_bytes
from pyaudit.rules.registry import Registry, load_registry


def _make_facts(source: bytes, path: Path | None = None) -> FileFacts:
    if path is None:
        path = Path("test.py")
    tree = parse_bytes(source, parser=create_parser())
    return FileFacts(path, source, tree, display_path=path.as_posix())


@pytest.fixture
def make_facts():
    """Factory: parse source bytes into FileFacts for a synthetic file."""
    return _make_facts


@pytest.fixture(scope="session")
def registry() -> Registry:
    return load_registry()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """
    A small project tree:

      app/models.py     PY004 + PY005 (pydantic v1 model)
      app/util.py       PY001 + PY008 + PY012
      app/clean.py      nothing to report
      scripts/run.py    PY011
      build/gen.py      ignored (build/)
      README.md         not a source file
    """
    (tmp_path / "app").mkdir()
    (tmp_path / "scripts").mkdir()
    (tmp_path / "build").mkdir()
    (tmp_path / "app" / "models.py").write_text(
        "from pydantic import BaseModel, validator\n"
        "\n"
        "\n"
        "class User(BaseModel):\n"
        "    name: str\n"
        "\n"
        "    class Config:\n"
        "        orm_mode = True\n"
        "\n"
        "    @validator(\"name\")\n"
        "    def check_name(cls, v):\n"
        "        return v\n"
    )
    (tmp_path / "app" / "util.py").write_text(
        "import os\n"
        "from typing import List\n"
        "\n"
        "\n"
        "def load(parts: list) -> str:\n"
        "    try:\n"
        "        return os.path.join(*parts)\n"
        "    except:\n"
        "        return ''\n"
    )
    (tmp_path / "app" / "clean.py").write_text(
        "from pathlib import Path\n"
        "\n"
        "\n"
        "def load(parts: list[str]) -> Path:\n"
        "    return Path(*parts)\n"
    )
    (tmp_path / "scripts" / "run.py").write_text(
        "import asyncio\n"
        "\n"
        "loop = asyncio.get_event_loop()\n"
    )
    (tmp_path / "build" / "gen.py").write_text("from typing import List\n")
    (tmp_path / "README.md").write_text("# project\n")
    return tmp_path
