"""Reference commands: rewrite or list legacy references in a JSON/YAML file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.table import Table

from ..config import CompatConfig
from ..references import ReferenceRewriter, format_path

YAML_SUFFIXES = (".yml", ".yaml")


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in YAML_SUFFIXES


def load_tree(path: Path) -> Any:
    """
    Load a configuration tree from JSON or YAML (by suffix).

    Raises:
        ValueError: If the file cannot be parsed
    """
    text = path.read_text(encoding="utf-8")
    try:
        if _is_yaml(path):
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to parse {path}: {e}") from e


def dump_tree(tree: Any, *, as_yaml: bool) -> str:
    if as_yaml:
        return yaml.safe_dump(tree, sort_keys=False, allow_unicode=True)
    return json.dumps(tree, indent=2, ensure_ascii=False) + "\n"


def run_rewrite(config: CompatConfig, path: Path, *, in_place: bool = False, output_json: bool = False) -> int:
    err = Console(stderr=True)
    try:
        tree = load_tree(path)
    except ValueError as e:
        err.print(str(e), style="bold red")
        return 1

    rewriter = ReferenceRewriter(config.identity, catalogs=config.catalogs)
    found = rewriter.find_legacy_references(tree)
    tree = rewriter.rewrite(tree)

    as_yaml = _is_yaml(path) and not output_json
    text = dump_tree(tree, as_yaml=as_yaml)

    if in_place:
        if found:
            path.write_text(text, encoding="utf-8")
        err.print(f"Rewrote {len(found)} legacy reference(s) in {path}", style="green" if found else "dim")
    else:
        print(text, end="")
    return 0


def run_scan(config: CompatConfig, path: Path) -> int:
    """List legacy references. Returns 1 if any were found."""
    err = Console(stderr=True)
    try:
        tree = load_tree(path)
    except ValueError as e:
        err.print(str(e), style="bold red")
        return 1

    rewriter = ReferenceRewriter(config.identity, catalogs=config.catalogs)
    found = rewriter.find_legacy_references(tree)
    if not found:
        Console().print(f"No legacy references in {path}", style="green")
        return 0

    table = Table(title=f"Legacy references in {path.name}")
    table.add_column("path", style="cyan")
    table.add_column("reference")
    table.add_column("rewritten", style="green")
    for tree_path, value in found:
        table.add_row(format_path(tree_path), value, rewriter.rewrite_string(value))

    Console().print(table)
    return 1
