"""Tests for the JSONL diagnostics store."""

from pathlib import Path

from sandpreview.core.schemas import StageDiagnostic
from sandpreview.engine.diagnostics import JsonlDiagnosticsStore
from sandpreview.engine.protocols import DiagnosticsSink


def diagnostic(run_id: str, message: str) -> StageDiagnostic:
    return StageDiagnostic(run_id=run_id, project_id="demo", stage="bundling", message=message)


def test_record_and_read(tmp_path: Path) -> None:
    store = JsonlDiagnosticsStore(tmp_path / "diagnostics")

    store.record(diagnostic("run-1", "first"))
    store.record(diagnostic("run-1", "second"))
    store.record(diagnostic("run-2", "other"))

    records = store.read("run-1")
    assert [r["message"] for r in records] == ["first", "second"]
    assert records[0]["stage"] == "bundling"
    assert records[0]["severity"] == "error"
    assert store.path_for("run-2").exists()


def test_read_missing_run(tmp_path: Path) -> None:
    assert JsonlDiagnosticsStore(tmp_path).read("nothing") == []


def test_read_skips_corrupt_lines(tmp_path: Path) -> None:
    store = JsonlDiagnosticsStore(tmp_path)
    store.record(diagnostic("run-1", "kept"))
    with open(store.path_for("run-1"), "a", encoding="utf-8") as f:
        f.write("{truncated\n")
    store.record(diagnostic("run-1", "also kept"))

    assert [r["message"] for r in store.read("run-1")] == ["kept", "also kept"]


def test_protocol_compliance(tmp_path: Path) -> None:
    assert isinstance(JsonlDiagnosticsStore(tmp_path), DiagnosticsSink)
