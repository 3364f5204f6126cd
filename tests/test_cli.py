"""Tests for the sandpreview CLI."""

from pathlib import Path

from typer.testing import CliRunner

from sandpreview import __version__
from sandpreview.cli import app
from sandpreview.engine.mocks import failed_result

runner = CliRunner()

COMPONENT = """import { create } from 'zustand';
import React from 'react';
export default function App() { return <p>hi</p>; }
"""


def write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


class TestClassify:
    """Tests for `sandpreview classify`."""

    def test_component(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["classify", str(write(tmp_path, "app.tsx", COMPONENT))])
        assert result.exit_code == 0
        assert "component-script" in result.stdout

    def test_markup(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["classify", str(write(tmp_path, "page.html", "<html></html>"))])
        assert result.exit_code == 0
        assert "markup" in result.stdout
        assert "document-root" in result.stdout

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["classify", str(tmp_path / "absent.tsx")])
        assert result.exit_code == 1
        assert "Cannot read" in result.stdout


class TestDeps:
    """Tests for `sandpreview deps`."""

    def test_lists_packages(self, container, tmp_path: Path) -> None:
        result = runner.invoke(app, ["deps", str(write(tmp_path, "app.tsx", COMPONENT))])
        assert result.exit_code == 0
        assert "zustand" in result.stdout
        assert "react" not in result.stdout

    def test_cap_counts_only_non_baseline_packages(self, container, registry, tmp_path: Path) -> None:
        config = write(tmp_path, "sandpreview.yaml", "preview:\n  limits:\n    max_packages: 1\n")
        source = write(
            tmp_path,
            "app.tsx",
            "import React from 'react';\nimport { createRoot } from 'react-dom/client';\n"
            "import { create } from 'zustand';\n",
        )

        result = runner.invoke(app, ["deps", str(source), "--resolve", "--config", str(config)])

        assert result.exit_code == 0
        assert registry.calls == [("fields", "zustand")]

    def test_resolve_skips_baseline(self, container, registry, tmp_path: Path) -> None:
        result = runner.invoke(app, ["deps", str(write(tmp_path, "app.tsx", COMPONENT)), "--resolve"])
        assert result.exit_code == 0
        assert ("fields", "zustand") in registry.calls
        assert ("fields", "react") not in registry.calls


class TestRun:
    """Tests for `sandpreview run`."""

    def test_component_loads(self, container, surfaces, tmp_path: Path) -> None:
        source = write(tmp_path, "app.tsx", COMPONENT)
        result = runner.invoke(app, ["run", str(source), "--home", str(tmp_path / "home")])

        assert result.exit_code == 0, result.stdout
        assert "loaded" in result.stdout
        assert surfaces.surfaces[0].title == "app.tsx"
        assert surfaces.surfaces[0].loaded_files

    def test_fallback_exits_nonzero(self, container, bundler, tmp_path: Path) -> None:
        bundler.set_result(failed_result("boom"))
        source = write(tmp_path, "app.tsx", COMPONENT)

        result = runner.invoke(app, ["run", str(source), "--home", str(tmp_path / "home")])

        assert result.exit_code == 1
        assert "fallback_loaded" in result.stdout

    def test_invalid_project_id(self, container, tmp_path: Path) -> None:
        source = write(tmp_path, "app.tsx", COMPONENT)
        result = runner.invoke(app, ["run", str(source), "--project-id", "../escape", "--persistent"])
        assert result.exit_code == 1
        assert "Invalid project id" in result.stdout

    def test_bad_config(self, container, tmp_path: Path) -> None:
        config = write(tmp_path, "bad.yaml", "preview: [")
        source = write(tmp_path, "page.html", "<p>x</p>")
        result = runner.invoke(app, ["run", str(source), "--config", str(config)])
        assert result.exit_code == 1
        assert "Invalid YAML" in result.stdout


class TestClean:
    """Tests for `sandpreview clean`."""

    def test_removes_run_directories(self, container, tmp_path: Path) -> None:
        home = tmp_path / "home"
        (home / "runs" / "run-1" / "node_modules").mkdir(parents=True)
        (home / "runs" / "run-2").mkdir(parents=True)
        (home / "offline-runs" / "demo").mkdir(parents=True)

        result = runner.invoke(app, ["clean", "--home", str(home)])

        assert result.exit_code == 0
        assert "Removed 2" in result.stdout
        assert list((home / "runs").iterdir()) == []
        assert (home / "offline-runs" / "demo").exists()

    def test_nothing_to_clean(self, container, tmp_path: Path) -> None:
        result = runner.invoke(app, ["clean", "--home", str(tmp_path)])
        assert result.exit_code == 0
        assert "Nothing to clean" in result.stdout
