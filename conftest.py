"""Pytest configuration: runs the python code blocks in docs/ through Sybil."""

from os import chdir, getcwd
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any

from sybil import Sybil
from sybil.parsers.markdown import PythonCodeBlockParser, SkipParser


def documentation_setup(namespace: dict[str, Any]) -> None:
    """Run each documentation file inside its own temporary directory."""
    tmp = TemporaryDirectory()
    namespace["_tmp"] = tmp
    namespace["_cwd"] = getcwd()
    chdir(Path(tmp.name))


def documentation_teardown(namespace: dict[str, Any]) -> None:
    """Restore the working directory and remove the temporary one."""
    chdir(namespace["_cwd"])
    namespace["_tmp"].cleanup()


pytest_collect_file = Sybil(
    parsers=[
        PythonCodeBlockParser(),
        SkipParser(),
    ],
    path=str(Path(__file__).parent / "docs"),
    pattern="*.md",
    setup=documentation_setup,
    teardown=documentation_teardown,
).pytest()
