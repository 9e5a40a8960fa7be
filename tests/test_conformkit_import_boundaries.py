import ast
from pathlib import Path


def test_conformkit_source_does_not_import_conform():
    repo_root = Path(__file__).resolve().parents[1]
    kit_dir = repo_root / "conformkit"

    offenders: list[str] = []

    for path in sorted(kit_dir.rglob("*.py")):
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.name == "conform" or alias.name.startswith("conform."):
                        offenders.append(f"{path}: import {alias.name}")
            elif isinstance(node, ast.ImportFrom):
                if node.module is None:
                    continue
                if node.module == "conform" or node.module.startswith("conform."):
                    offenders.append(f"{path}: from {node.module} import ...")

    assert offenders == []


def test_importing_conformkit_modules_does_not_pull_in_conform():
    import subprocess
    import sys
    import textwrap

    code = textwrap.dedent(
        """\
        import importlib
        import pkgutil
        import sys

        import conformkit as pkg

        for module in pkgutil.walk_packages(pkg.__path__, pkg.__name__ + "."):
            before = set(sys.modules)
            importlib.import_module(module.name)
            loaded = sorted(
                name for name in (set(sys.modules) - before)
                if name == "conform" or name.startswith("conform.")
            )
            if loaded:
                raise SystemExit(f"Importing {module.name} loaded forbidden modules: {loaded}")
        """
    )

    proc = subprocess.run(
        [sys.executable, "-c", code],
        capture_output=True,
        text=True,
        cwd=str(Path(__file__).resolve().parents[1]),
    )
    assert proc.returncode == 0, proc.stderr or proc.stdout
