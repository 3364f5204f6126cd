"""Materialize a buildable project from component source.

Layout of a scaffold directory:

    package.json          manifest (baseline + accepted dependencies)
    index.html            shell loading ./bundle.js into #root
    App.tsx               user source, alias imports rewritten
    index.tsx             bootstrap: styling runtime + mount App
    components/ui/*.tsx   primitive stubs, only when the source uses them
    node_modules/         installed-dependency cache (never touched here)
"""

import json
import logging
import re
import shutil
import tempfile
from datetime import datetime
from pathlib import Path

from sandpreview.core.schemas import (
    PackageSafetyRecord,
    PersistenceMode,
    ScaffoldedProject,
    SourceArtifact,
)
from sandpreview.exceptions import ScaffoldError
from sandpreview.scaffold.template_render import STUBS_DIR, render_template

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"
SHELL_FILENAME = "index.html"
ENTRY_FILENAME = "App.tsx"
BOOTSTRAP_FILENAME = "index.tsx"
BUNDLE_FILENAME = "bundle.js"
STUBS_DIRNAME = Path("components") / "ui"
ROOT_ELEMENT_ID = "root"
MANIFEST_NAME = "sandpreview-run"

UI_KIT_ALIAS = "@/components/ui/"
STUB_COMPONENTS = ("card", "button", "input", "textarea", "label", "tabs", "switch")

# from '@/x', import '@/x' and import('@/x'); the quote style is kept
_ALIAS_IMPORT_RE = re.compile(r"""((?:\bfrom|\bimport)\s*\(?\s*)(['"])@/""")


def rewrite_alias_imports(source: str) -> str:
    """Rewrite `@/` alias imports to paths relative to the entry module."""
    return _ALIAS_IMPORT_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}./", source)


def references_ui_kit(source: str) -> bool:
    return UI_KIT_ALIAS in source


def build_manifest(
    baseline: dict[str, str],
    accepted: list[PackageSafetyRecord],
) -> dict[str, object]:
    """Manifest with baseline dependencies first; baseline wins on clashes."""
    dependencies = dict(baseline)
    for record in accepted:
        if not record.accepted or not record.version:
            continue
        dependencies.setdefault(record.name, record.version_range)

    return {
        "name": MANIFEST_NAME,
        "private": True,
        "type": "module",
        "dependencies": dependencies,
    }


def create_run_directory(runs_dir: Path) -> Path:
    """Create a fresh directory for an ephemeral run.

    Returns path like: runs_dir/run-20251207-215930-k2j4x1ab/
    """
    runs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return Path(tempfile.mkdtemp(prefix=f"run-{timestamp}-", dir=runs_dir))


def persistent_directory(offline_dir: Path, project_id: str) -> Path:
    """Directory keyed by project identity for persistent runs."""
    target = offline_dir / project_id
    # project_id is pattern-validated on SourceArtifact; guard direct callers too
    if target.resolve().parent != offline_dir.resolve():
        raise ScaffoldError(f"Project id escapes the offline directory: {project_id!r}")
    target.mkdir(parents=True, exist_ok=True)
    return target


class ProjectScaffolder:
    """Writes the scaffold files for one run."""

    def __init__(self, baseline_dependencies: dict[str, str]) -> None:
        self._baseline = dict(baseline_dependencies)

    @property
    def baseline_dependencies(self) -> dict[str, str]:
        return dict(self._baseline)

    def scaffold(
        self,
        artifact: SourceArtifact,
        accepted: list[PackageSafetyRecord],
        target_dir: Path,
    ) -> ScaffoldedProject:
        """Write (or overwrite) the scaffold files in target_dir.

        An existing node_modules/ is left alone so persistent runs keep
        their dependency cache.

        Raises:
            ScaffoldError: If any scaffold file cannot be written
        """
        manifest = build_manifest(self._baseline, accepted)
        title = artifact.title or "Preview"

        try:
            target_dir.mkdir(parents=True, exist_ok=True)

            manifest_path = target_dir / MANIFEST_FILENAME
            manifest_path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")

            shell_path = target_dir / SHELL_FILENAME
            shell_path.write_text(
                render_template(
                    "shell.html.j2",
                    title=title,
                    root_id=ROOT_ELEMENT_ID,
                    bundle_filename=BUNDLE_FILENAME,
                ),
                encoding="utf-8",
            )

            entry_path = target_dir / ENTRY_FILENAME
            entry_path.write_text(rewrite_alias_imports(artifact.text), encoding="utf-8")

            bootstrap_path = target_dir / BOOTSTRAP_FILENAME
            bootstrap_path.write_text(
                render_template(
                    "bootstrap.tsx.j2",
                    entry_module=Path(ENTRY_FILENAME).stem,
                    root_id=ROOT_ELEMENT_ID,
                ),
                encoding="utf-8",
            )

            stub_paths: list[Path] = []
            if references_ui_kit(artifact.text):
                stub_paths = self._write_stubs(target_dir)
        except OSError as e:
            raise ScaffoldError(f"Cannot write scaffold in {target_dir}: {e}") from e

        logger.info(
            "Scaffolded %s (%d dependencies, %d stubs)",
            target_dir,
            len(manifest["dependencies"]),  # type: ignore[arg-type]
            len(stub_paths),
        )

        return ScaffoldedProject(
            root=target_dir,
            manifest_path=manifest_path,
            shell_path=shell_path,
            entry_path=entry_path,
            bootstrap_path=bootstrap_path,
            stub_paths=stub_paths,
            dependencies=manifest["dependencies"],  # type: ignore[arg-type]
            mode=artifact.mode,
            bundle_filename=BUNDLE_FILENAME,
        )

    def _write_stubs(self, target_dir: Path) -> list[Path]:
        stubs_dir = target_dir / STUBS_DIRNAME
        stubs_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for name in STUB_COMPONENTS:
            source = STUBS_DIR / "ui" / f"{name}.tsx"
            destination = stubs_dir / source.name
            shutil.copyfile(source, destination)
            written.append(destination)
        return written

    def prepare_directory(self, artifact: SourceArtifact, runs_dir: Path, offline_dir: Path) -> Path:
        """Pick the scaffold directory for the artifact's persistence mode."""
        if artifact.mode == PersistenceMode.PERSISTENT:
            return persistent_directory(offline_dir, artifact.project_id)
        return create_run_directory(runs_dir)
