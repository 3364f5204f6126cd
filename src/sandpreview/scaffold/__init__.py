"""Scaffold generation for buildable preview projects."""

from sandpreview.scaffold.project import (
    BOOTSTRAP_FILENAME,
    BUNDLE_FILENAME,
    ENTRY_FILENAME,
    MANIFEST_FILENAME,
    SHELL_FILENAME,
    STUB_COMPONENTS,
    ProjectScaffolder,
    build_manifest,
    create_run_directory,
    persistent_directory,
    references_ui_kit,
    rewrite_alias_imports,
)
from sandpreview.scaffold.template_render import render_template

__all__ = [
    "BOOTSTRAP_FILENAME",
    "BUNDLE_FILENAME",
    "ENTRY_FILENAME",
    "MANIFEST_FILENAME",
    "SHELL_FILENAME",
    "STUB_COMPONENTS",
    "ProjectScaffolder",
    "build_manifest",
    "create_run_directory",
    "persistent_directory",
    "references_ui_kit",
    "rewrite_alias_imports",
    "render_template",
]
