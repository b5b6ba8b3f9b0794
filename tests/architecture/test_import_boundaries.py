"""
Import-boundary enforcement.

1. Engine purity       -- payroll_engines/** may not import DB, ORM, models,
                          services, config, batch or ingestion layers.
2. Engine no-impure    -- payroll_engines/** may not call wall-clock or
                          environment functions.
3. Kernel boundary     -- payroll_kernel/** never imports the layers above it.
4. Domain purity       -- payroll_kernel/domain/** is ORM-free.
5. Adapter isolation   -- payroll_ingestion/adapters/** does file I/O only.
6. Clock authority     -- only the system clock reads the wall clock.

All scanning is done via AST; these tests are read-only.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(package: str) -> list[Path]:
    """Return all .py files under *package*, sorted for deterministic order."""
    return sorted((ROOT / package).rglob("*.py"))


def _parse(filepath: Path) -> ast.AST | None:
    try:
        return ast.parse(filepath.read_text(encoding="utf-8"), filename=str(filepath))
    except (SyntaxError, UnicodeDecodeError):
        return None


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    tree = _parse(filepath)
    if tree is None:
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _extract_attribute_calls(filepath: Path) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    tree = _parse(filepath)
    if tree is None:
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            results.append((node.lineno, f"{node.value.id}.{node.attr}"))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    """True if *module* equals or is a child of any prefix."""
    for prefix in prefixes:
        if module == prefix or module.startswith(f"{prefix}."):
            return True
    return False


def _import_violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    violations: list[str] = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            if _matches_any(module, forbidden):
                violations.append(
                    f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'"
                )
    return violations


# ---------------------------------------------------------------------------
# 1. Engine purity
# ---------------------------------------------------------------------------

class TestEnginePurity:

    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "psycopg2",
        "sqlite3",
        "payroll_kernel.models",
        "payroll_kernel.db",
        "payroll_kernel.services",
        "payroll_config",
        "payroll_batch",
        "payroll_ingestion",
    )

    def test_engine_files_exist(self):
        assert _python_files("payroll_engines")

    def test_engine_files_have_no_forbidden_imports(self):
        violations = _import_violations("payroll_engines", self.FORBIDDEN_PREFIXES)

        assert not violations, (
            "Engine purity violation: payroll_engines/** must not import "
            "DB drivers, ORM, kernel models/db/services or outer layers:\n"
            + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 2. Engine no-impure
# ---------------------------------------------------------------------------

class TestEngineNoImpureFunctions:
    """time.monotonic is allowed (observational only)."""

    FORBIDDEN_CALLS = frozenset({
        "datetime.now",
        "datetime.utcnow",
        "date.today",
        "time.time",
        "os.environ",
        "os.getenv",
        "random.random",
    })

    def test_no_impure_calls_in_engines(self):
        violations: list[str] = []

        for filepath in _python_files("payroll_engines"):
            for lineno, qualname in _extract_attribute_calls(filepath):
                if qualname in self.FORBIDDEN_CALLS:
                    violations.append(
                        f"  {filepath.relative_to(ROOT)}:{lineno} calls '{qualname}'"
                    )

        assert not violations, (
            "Engine impurity violation: use an explicit clock or policy "
            "parameter instead:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 3. Kernel boundary
# ---------------------------------------------------------------------------

class TestKernelBoundary:

    def test_kernel_never_imports_outer_layers(self):
        violations = _import_violations(
            "payroll_kernel",
            ("payroll_engines", "payroll_config", "payroll_batch", "payroll_ingestion"),
        )

        assert not violations, (
            "Kernel boundary violation:\n" + "\n".join(violations)
        )

    def test_batch_never_imports_ingestion(self):
        violations = _import_violations("payroll_batch", ("payroll_ingestion",))

        assert not violations, "\n".join(violations)

    def test_config_never_touches_persistence(self):
        violations = _import_violations(
            "payroll_config",
            ("sqlalchemy", "payroll_kernel.models", "payroll_kernel.db",
             "payroll_kernel.services", "payroll_batch", "payroll_ingestion"),
        )

        assert not violations, "\n".join(violations)


# ---------------------------------------------------------------------------
# 4. Domain purity
# ---------------------------------------------------------------------------

class TestDomainPurity:

    def test_domain_is_orm_free(self):
        violations = _import_violations(
            "payroll_kernel/domain",
            ("sqlalchemy", "payroll_kernel.models", "payroll_kernel.db", "payroll_kernel.services"),
        )

        assert not violations, (
            "Domain purity violation: payroll_kernel/domain/** must stay "
            "free of persistence imports:\n" + "\n".join(violations)
        )

    def test_ingestion_domain_is_orm_free(self):
        violations = _import_violations(
            "payroll_ingestion/domain",
            ("sqlalchemy", "payroll_kernel.models", "payroll_kernel.services"),
        )

        assert not violations, "\n".join(violations)


# ---------------------------------------------------------------------------
# 5. Adapter isolation
# ---------------------------------------------------------------------------

class TestAdapterIsolation:

    def test_adapters_do_file_io_only(self):
        violations = _import_violations(
            "payroll_ingestion/adapters",
            ("sqlalchemy", "payroll_kernel", "payroll_engines", "payroll_batch"),
        )

        assert not violations, (
            "Adapter isolation violation: source adapters may not touch the "
            "database or the kernel:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 6. Clock authority
# ---------------------------------------------------------------------------

class TestClockAuthority:

    ALLOWED = {"payroll_kernel/domain/clock.py"}

    def test_only_system_clock_reads_wall_clock(self):
        violations: list[str] = []

        for package in ("payroll_kernel", "payroll_engines", "payroll_batch", "payroll_ingestion"):
            for filepath in _python_files(package):
                relative = filepath.relative_to(ROOT).as_posix()
                if relative in self.ALLOWED:
                    continue
                for lineno, qualname in _extract_attribute_calls(filepath):
                    if qualname in {"datetime.now", "datetime.utcnow", "date.today"}:
                        violations.append(f"  {relative}:{lineno} calls '{qualname}'")

        assert not violations, (
            "Wall-clock reads outside the Clock:\n" + "\n".join(violations)
        )
