"""Diagnostics sinks for stage failures and warnings."""

import json
import logging
from pathlib import Path
from typing import Any

from sandpreview.core.schemas import StageDiagnostic
from sandpreview.engine.protocols import DiagnosticsSink

logger = logging.getLogger(__name__)


class JsonlDiagnosticsStore(DiagnosticsSink):
    """Append-only JSONL diagnostics, one file per run.

    Writes to <diagnostics_dir>/<run_id>.jsonl and flushes after each
    record so a crash leaves everything written so far on disk.
    """

    def __init__(self, diagnostics_dir: Path) -> None:
        self.diagnostics_dir = diagnostics_dir

    def path_for(self, run_id: str) -> Path:
        return self.diagnostics_dir / f"{run_id}.jsonl"

    def record(self, diagnostic: StageDiagnostic) -> None:
        self.diagnostics_dir.mkdir(parents=True, exist_ok=True)
        line = diagnostic.model_dump_json() + "\n"
        with open(self.path_for(diagnostic.run_id), "a", encoding="utf-8") as f:
            f.write(line)
            f.flush()

    def read(self, run_id: str) -> list[dict[str, Any]]:
        """Read back a run's diagnostics, skipping corrupt lines."""
        path = self.path_for(run_id)
        if not path.exists():
            return []

        records: list[dict[str, Any]] = []
        with open(path, encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError as e:
                    logger.warning("Skipping corrupt line %d in %s: %s", line_num, path, e)
        return records
