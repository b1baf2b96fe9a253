#!/usr/bin/env python3
"""Fail when meterwatch.__version__ and pyproject.toml disagree."""

import ast
import sys
import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def package_version() -> str:
    tree = ast.parse((ROOT / "meterwatch" / "__init__.py").read_text())
    for node in tree.body:
        if isinstance(node, ast.Assign) and any(
            isinstance(target, ast.Name) and target.id == "__version__" for target in node.targets
        ):
            return ast.literal_eval(node.value)
    return ""


def project_version() -> str:
    with open(ROOT / "pyproject.toml", "rb") as f:
        return tomllib.load(f).get("project", {}).get("version", "")


def main() -> int:
    package_ver = package_version()
    project_ver = project_version()

    if not package_ver or not project_ver:
        print("ERROR: version missing from meterwatch/__init__.py or pyproject.toml")
        return 1

    if package_ver != project_ver:
        print(f"VERSION MISMATCH: meterwatch={package_ver} vs pyproject.toml={project_ver}")
        return 1

    print(f"version OK: {package_ver}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
