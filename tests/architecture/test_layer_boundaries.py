"""
Import-boundary enforcement for the reconciliation packages.

1. Engine purity      -- recon_engines/** may not import the database, ORM
                         models, selectors, services or the config loader.
2. Engine no-impure   -- recon_engines/** may not read the wall clock or the
                         environment.
3. Kernel isolation   -- recon_kernel/** may not import config, engines or
                         services.
4. Config direction   -- recon_config/** may not import engines or services.

All scanning is done via AST -- these tests are read-only.
"""

import ast
import glob
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[str]:
    """Return all .py files under *package*, sorted for deterministic order."""
    return sorted(glob.glob(str(ROOT / package / "**" / "*.py"), recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    tree = ast.parse(Path(filepath).read_text(encoding="utf-8"), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _extract_attribute_calls(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    tree = ast.parse(Path(filepath).read_text(encoding="utf-8"), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            results.append((node.lineno, f"{node.value.id}.{node.attr}"))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    """True if *module* equals or is a child of any prefix."""
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for path in _python_files(package):
        for lineno, module in _extract_imports(path):
            if _matches_any(module, forbidden):
                found.append(f"{Path(path).relative_to(ROOT)}:{lineno} imports {module}")
    return found


class TestEnginePurity:
    FORBIDDEN = (
        "sqlalchemy",
        "recon_kernel.db",
        "recon_kernel.models",
        "recon_kernel.selectors",
        "recon_services",
        "recon_config.loader",
        "yaml",
    )

    def test_no_io_imports(self):
        assert _violations("recon_engines", self.FORBIDDEN) == []

    def test_config_only_through_schema(self):
        for path in _python_files("recon_engines"):
            for lineno, module in _extract_imports(path):
                if _matches_any(module, ("recon_config",)):
                    assert module == "recon_config.schema", f"{path}:{lineno} imports {module}"

    @pytest.mark.parametrize("reference", [
        "datetime.now",
        "datetime.utcnow",
        "date.today",
        "os.environ",
        "os.getenv",
    ])
    def test_no_clock_or_environment(self, reference):
        hits = [
            f"{path}:{lineno}"
            for path in _python_files("recon_engines")
            for lineno, ref in _extract_attribute_calls(path)
            if ref == reference
        ]
        assert hits == []


class TestKernelIsolation:
    def test_kernel_imports_no_outer_layer(self):
        forbidden = ("recon_config", "recon_engines", "recon_services")
        assert _violations("recon_kernel", forbidden) == []


class TestConfigDirection:
    def test_config_imports_no_engines_or_services(self):
        assert _violations("recon_config", ("recon_engines", "recon_services")) == []
