"""Loading previews into isolated rendering surfaces.

Three loads are possible for a session: the bundle shell (success path),
a markup document (markup artifacts) and the fallback document, which wraps
the raw untransformed source and cannot fail to be synthesized.
"""

import logging
import re
import tempfile
import webbrowser
from pathlib import Path
from urllib.parse import quote, unquote

from sandpreview.core.schemas import (
    ExecutionSession,
    ResourceKind,
    ScaffoldedProject,
    SurfacePolicy,
)
from sandpreview.engine.protocols import SandboxSurface, SurfaceFactory
from sandpreview.exceptions import SandboxPolicyError
from sandpreview.scaffold.template_render import render_template

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_TITLE = "Project"

DATA_URL_PREFIX = "data:text/html;charset=utf-8,"

_FULL_DOCUMENT_RE = re.compile(r"<html[\s\S]*</html>", re.IGNORECASE)
_MODULE_SCRIPT_RE = re.compile(
    r"""<script\s+type=["']module["']\s+src=["'](?P<src>(?![a-z][a-z0-9+.-]*:|/)[^"']+)["']\s*>\s*</script>""",
    re.IGNORECASE,
)


def ensure_html_document(source: str | None, title: str = DEFAULT_DOCUMENT_TITLE) -> str:
    """Return source as a full HTML document, wrapping it when needed."""
    source = source or ""
    if _FULL_DOCUMENT_RE.search(source):
        return source
    return render_template("document.html.j2", title=title, body=source)


def to_data_url(html: str) -> str:
    return DATA_URL_PREFIX + quote(html, safe="")


def inline_module_scripts(html: str, base_dir: Path) -> str:
    """Replace local `<script type="module" src=...>` tags with inline copies.

    Browsers refuse module script requests from file:// pages, so a shell
    opened from disk only runs its bundle once the bundle is inline. Sources
    outside base_dir or missing on disk are left as they are.
    """
    root = base_dir.resolve()

    def _inline(match: re.Match[str]) -> str:
        script_path = (root / match.group("src")).resolve()
        if root not in script_path.parents or not script_path.is_file():
            return match.group(0)
        code = script_path.read_text(encoding="utf-8")
        # An inline script ends at the first "</script", wherever it appears
        code = re.sub(r"</(script)", r"<\\/\1", code, flags=re.IGNORECASE)
        return f'<script type="module">{code}</script>'

    return _MODULE_SCRIPT_RE.sub(_inline, html)


class ExecutionSandbox:
    """Opens sessions and loads resources into them."""

    def __init__(self, surface_factory: SurfaceFactory, policy: SurfacePolicy | None = None) -> None:
        policy = policy or SurfacePolicy()
        if policy.native_bridge:
            raise SandboxPolicyError("Preview surfaces must not expose a native-capability bridge")
        self._surface_factory = surface_factory
        self._policy = policy

    def open(self, title: str) -> ExecutionSession:
        """Create a fresh surface. Sessions are never shared between runs."""
        surface = self._surface_factory(self._policy, title)
        return ExecutionSession(title=title, surface=surface, policy=self._policy)

    async def load_bundle(self, session: ExecutionSession, project: ScaffoldedProject) -> ExecutionSession:
        await session.surface.load_file(project.shell_path)
        session.resource = str(project.shell_path)
        session.resource_kind = ResourceKind.BUNDLE
        return session

    async def load_document(self, session: ExecutionSession, source: str) -> ExecutionSession:
        return await self._load_inline(session, source, ResourceKind.DOCUMENT)

    async def load_fallback(self, session: ExecutionSession, source: str) -> ExecutionSession:
        return await self._load_inline(session, source, ResourceKind.FALLBACK)

    async def _load_inline(
        self, session: ExecutionSession, source: str, kind: ResourceKind
    ) -> ExecutionSession:
        url = to_data_url(ensure_html_document(source, title=session.title))
        await session.surface.load_url(url)
        session.resource = url
        session.resource_kind = kind
        return session


class BrowserSurface(SandboxSurface):
    """Preview in the system browser.

    No native bridge exists in this surface; the browser's own same-origin
    and content security rules apply. Browsers refuse top-level data:
    navigations and module script requests from file:// pages, so every
    document is written to a staging file first, with local module
    scripts inlined.
    """

    def __init__(self, policy: SurfacePolicy, title: str, staging_dir: Path | None = None) -> None:
        if policy.native_bridge:
            raise SandboxPolicyError("BrowserSurface cannot provide a native bridge")
        self.policy = policy
        self.title = title
        self._staging_dir = staging_dir

    def _stage(self, html: str) -> Path:
        if self._staging_dir is not None:
            self._staging_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            suffix=".html",
            prefix="preview-",
            dir=self._staging_dir,
            delete=False,
            encoding="utf-8",
        ) as f:
            f.write(html)
            return Path(f.name)

    def _open(self, path: Path) -> None:
        logger.info("Opening %s", path)
        webbrowser.open(path.resolve().as_uri())

    async def load_file(self, path: Path) -> None:
        if path.suffix.lower() not in (".html", ".htm"):
            self._open(path)
            return
        html = inline_module_scripts(path.read_text(encoding="utf-8"), path.parent)
        self._open(self._stage(html))

    async def load_url(self, url: str) -> None:
        if not url.startswith(DATA_URL_PREFIX):
            webbrowser.open(url)
            return
        self._open(self._stage(unquote(url[len(DATA_URL_PREFIX):])))


def browser_surface_factory(staging_dir: Path | None = None) -> SurfaceFactory:
    """SurfaceFactory producing BrowserSurface instances."""

    def factory(policy: SurfacePolicy, title: str) -> SandboxSurface:
        return BrowserSurface(policy, title, staging_dir=staging_dir)

    return factory
