"""Tests for the bundle stage."""

from pathlib import Path

import pytest

from sandpreview.config import ToolingConfig
from sandpreview.core.schemas import CommandResult, ScaffoldedProject
from sandpreview.engine.bundle import BundleBuilder
from sandpreview.engine.mocks import FakeBundler, failed_result
from sandpreview.exceptions import BuildFailedError


@pytest.fixture
def project(tmp_path: Path) -> ScaffoldedProject:
    return ScaffoldedProject(
        root=tmp_path,
        manifest_path=tmp_path / "package.json",
        shell_path=tmp_path / "index.html",
        entry_path=tmp_path / "App.tsx",
        bootstrap_path=tmp_path / "index.tsx",
    )


def test_request_for(project: ScaffoldedProject) -> None:
    builder = BundleBuilder(FakeBundler(), ToolingConfig(bundle_timeout_seconds=15))
    request = builder.request_for(project)

    assert request.entry_path == project.bootstrap_path
    assert request.output_path == project.root / "bundle.js"
    assert request.working_dir == project.root
    assert request.module_format == "esm"
    assert request.target == "browser"
    assert request.jsx == "automatic"
    assert request.aliases == {"@": "."}
    assert request.defines == {"process.env.NODE_ENV": "production"}
    assert request.loaders[".tsx"] == "tsx"
    assert request.timeout == 15


@pytest.mark.asyncio
async def test_build_success(project: ScaffoldedProject) -> None:
    artifact = await BundleBuilder(FakeBundler()).build(project)
    assert artifact.succeeded
    assert artifact.path.exists()


@pytest.mark.asyncio
async def test_build_failure_raises(project: ScaffoldedProject) -> None:
    bundler = FakeBundler(failed_result('✘ [ERROR] Could not resolve "left-pad"'))
    with pytest.raises(BuildFailedError, match="Could not resolve") as exc_info:
        await BundleBuilder(bundler).build(project)
    assert exc_info.value.stage == "bundling"
    assert not project.bundle_path.exists()


@pytest.mark.asyncio
async def test_build_timeout_raises(project: ScaffoldedProject) -> None:
    timed_out = CommandResult(exit_code=124, stdout="", stderr="", duration_seconds=1, timed_out=True)
    with pytest.raises(BuildFailedError, match="timed out"):
        await BundleBuilder(FakeBundler(timed_out)).build(project)


@pytest.mark.asyncio
async def test_missing_output_raises(project: ScaffoldedProject) -> None:
    with pytest.raises(BuildFailedError, match="wrote no bundle.js"):
        await BundleBuilder(FakeBundler(write_output=False)).build(project)


@pytest.mark.asyncio
async def test_stale_bundle_from_earlier_run_is_not_reused(project: ScaffoldedProject) -> None:
    project.bundle_path.write_text("console.log('stale');\n", encoding="utf-8")

    with pytest.raises(BuildFailedError, match="wrote no bundle.js"):
        await BundleBuilder(FakeBundler(write_output=False)).build(project)
    assert not project.bundle_path.exists()
