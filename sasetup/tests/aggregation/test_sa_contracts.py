"""Layout rules for the SA setup sources, checked on their syntax trees.

- every module opens with a docstring, and so does every top-level def/class,
- only ``sa/stats.py`` prints,
- pyamg is never imported at runtime,
- the ``amg_core`` kernels work on raw arrays and do not import scipy.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import pytest

PACKAGE_DIR = Path(__file__).resolve().parents[2]
KERNEL_DIR = PACKAGE_DIR / "amg_core"
WRAPPER_DIR = PACKAGE_DIR / "aggregation" / "sa"

SOURCES = [
    *sorted(WRAPPER_DIR.glob("*.py")),
    *sorted(KERNEL_DIR.glob("*.py")),
    PACKAGE_DIR / "aggregation" / "smoothed_aggregation.py",
]


@dataclass(frozen=True)
class ModuleFacts:
    has_docstring: bool
    undocumented: tuple[str, ...]
    print_lines: tuple[int, ...]
    imports: frozenset[str]


@lru_cache(maxsize=None)
def module_facts(path: Path) -> ModuleFacts:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))

    undocumented = tuple(
        node.name
        for node in tree.body
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef))
        and ast.get_docstring(node) is None
    )

    print_lines = []
    imports = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Call) and getattr(node.func, "id", None) == "print":
            print_lines.append(node.lineno)
        elif isinstance(node, ast.Import):
            imports.update(alias.name.partition(".")[0] for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.level == 0:
            imports.add(node.module.partition(".")[0])

    return ModuleFacts(
        has_docstring=ast.get_docstring(tree, clean=False) is not None,
        undocumented=undocumented,
        print_lines=tuple(print_lines),
        imports=frozenset(imports),
    )


def _id(path: Path) -> str:
    return f"{path.parent.name}/{path.name}"


@pytest.mark.parametrize("path", SOURCES, ids=_id)
def test_docstrings(path):
    facts = module_facts(path)
    assert facts.has_docstring, f"{_id(path)} has no module docstring"
    assert not facts.undocumented, f"{_id(path)}: no docstring on {', '.join(facts.undocumented)}"


@pytest.mark.parametrize("path", [p for p in SOURCES if p.name != "stats.py"], ids=_id)
def test_only_stats_prints(path):
    lines = module_facts(path).print_lines
    assert not lines, f"{_id(path)} prints on lines {lines}"


@pytest.mark.parametrize("path", SOURCES, ids=_id)
def test_no_runtime_pyamg_import(path):
    assert "pyamg" not in module_facts(path).imports


@pytest.mark.parametrize("path", sorted(KERNEL_DIR.glob("*.py")), ids=_id)
def test_kernels_do_not_import_scipy(path):
    assert "scipy" not in module_facts(path).imports
