from __future__ import annotations

import argparse
import ast
import sys
from dataclasses import dataclass
from pathlib import Path

PACKAGE_NAME = "testselect"

# Lower layers never import higher ones.
LAYER_ORDER = ("domain", "services", "usecases", "entrypoints")
# Selection stays a pure function of suites and paths: no event logging in domain.
DOMAIN_FORBIDDEN = {"observability"}


@dataclass(frozen=True)
class ImportViolation:
    source_module: str
    target_module: str
    lineno: int
    reason: str


def layer_of(module_name: str) -> str:
    parts = module_name.split(".")
    if len(parts) > 1 and (parts[1] in LAYER_ORDER or parts[1] in DOMAIN_FORBIDDEN):
        return parts[1]
    return "core"


def _is_forbidden(source_layer: str, target_layer: str) -> bool:
    if source_layer == "domain" and target_layer in DOMAIN_FORBIDDEN:
        return True
    if source_layer not in LAYER_ORDER or target_layer not in LAYER_ORDER:
        return False
    return LAYER_ORDER.index(target_layer) > LAYER_ORDER.index(source_layer)


def _package_imports(tree: ast.AST, package: str) -> list[tuple[str, int]]:
    found: list[tuple[str, int]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
            names = [node.module]
        else:
            continue
        found.extend((name, node.lineno) for name in names if name.startswith(f"{package}."))
    return found


def collect_violations(project_root: Path, package: str = PACKAGE_NAME) -> list[ImportViolation]:
    violations: list[ImportViolation] = []
    for path in sorted((project_root / package).rglob("*.py")):
        source_module = ".".join(path.relative_to(project_root).with_suffix("").parts)
        source_layer = layer_of(source_module)
        tree = ast.parse(path.read_text(encoding="utf-8"))
        for target_module, lineno in _package_imports(tree, package):
            target_layer = layer_of(target_module)
            if _is_forbidden(source_layer, target_layer):
                violations.append(
                    ImportViolation(
                        source_module=source_module,
                        target_module=target_module,
                        lineno=lineno,
                        reason=f"layer '{source_layer}' must not depend on layer '{target_layer}'",
                    )
                )
    return violations


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check testselect layer imports.")
    parser.add_argument("--project-root", type=Path, default=Path("."))
    args = parser.parse_args(argv)

    violations = collect_violations(args.project_root.resolve())
    for violation in violations:
        print(
            f"{violation.source_module}:{violation.lineno} -> "
            f"{violation.target_module} ({violation.reason})",
            file=sys.stderr,
        )
    return 1 if violations else 0


if __name__ == "__main__":
    raise SystemExit(main())
