"""External package discovery in component source.

Finds every string-literal module reference (static, dynamic and bare
imports, re-exports, require calls), maps each to its package root and
keeps only names that pass a conservative grammar and are not host or
runtime built-ins.
"""

import logging
import re
from collections.abc import Collection, Iterator

from sandpreview.core.schemas import ImportCandidate
from sandpreview.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 20

# Deep imports whose package root is not simply the first path segment
# or which we want normalized before validation.
KNOWN_DEEP_IMPORTS: dict[str, str] = {
    "react-dom/client": "react-dom",
    "react-dom/server": "react-dom",
    "react/jsx-runtime": "react",
    "react/jsx-dev-runtime": "react",
}

LOCAL_ALIAS_PREFIXES = ("@/", "~/")

BLOCKED_PACKAGES = frozenset(
    {
        "electron",
        "fs",
        "child_process",
        "path",
        "http",
        "https",
        "os",
        "vm",
        "worker_threads",
        "net",
        "tls",
        "dgram",
        "cluster",
        "module",
        "process",
        "inspector",
        "v8",
    }
)

_PACKAGE_NAME_RE = re.compile(r"^(?:@[a-z0-9-~][a-z0-9-._~]*/)?[a-z0-9-~][a-z0-9-._~]*$")
_PROTOCOL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")

# Strings are matched so their contents are kept; comments are dropped.
_COMMENT_OR_STRING_RE = re.compile(
    r"""("(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*'|`(?:\\.|[^`\\])*`)"""
    r"""|(/\*[\s\S]*?\*/|//[^\n]*)"""
)

# Import and export clauses hold only identifiers, braces, commas, `*` and
# whitespace, so they may span lines.
_IMPORT_RE = re.compile(
    r"""import\s+[\w$*{},\s]+?\s+from\s+(["'])(?P<static>[^"'\n]+)\1"""
    r"""|import\s*\(\s*(["'])(?P<dynamic>[^"'\n]+)\3\s*\)"""
    r"""|import\s+(["'])(?P<bare>[^"'\n]+)\5"""
    r"""|export\s+[\w$*{},\s]+?\s+from\s+(["'])(?P<reexport>[^"'\n]+)\7"""
    r"""|require\s*\(\s*(["'])(?P<require>[^"'\n]+)\9\s*\)"""
)

_SPECIFIER_GROUPS = ("static", "dynamic", "bare", "reexport", "require")


def strip_comments(source: str) -> str:
    """Remove line and block comments, leaving string literals intact."""

    def _replace(match: re.Match[str]) -> str:
        if match.group(1) is not None:
            return match.group(1)
        # Keep line structure so later line-anchored scans still work
        return "\n" * match.group(2).count("\n")

    return _COMMENT_OR_STRING_RE.sub(_replace, str(source))


def package_root(specifier: str) -> str | None:
    """Map an import specifier to the package it loads from.

    Returns None for relative, absolute, protocol-prefixed and local
    alias specifiers, and for malformed scoped specifiers.
    """
    if not specifier:
        return None
    if specifier.startswith((".", "/")):
        return None
    if specifier.startswith(LOCAL_ALIAS_PREFIXES):
        return None
    if _PROTOCOL_RE.match(specifier):
        return None

    specifier = KNOWN_DEEP_IMPORTS.get(specifier, specifier)

    parts = specifier.split("/")
    if specifier.startswith("@"):
        if len(parts) < 2 or not parts[0][1:] or not parts[1]:
            return None
        return f"{parts[0]}/{parts[1]}"
    return parts[0] or None


def is_safe_package_name(name: str | None) -> bool:
    """Conservative registry-name check plus the built-in blocklist."""
    if not name:
        return False
    if not _PACKAGE_NAME_RE.match(name):
        return False
    return name not in BLOCKED_PACKAGES


def iter_specifiers(source: str) -> Iterator[str]:
    """Yield raw module specifiers in source order, comments excluded."""
    for match in _IMPORT_RE.finditer(strip_comments(source)):
        for group in _SPECIFIER_GROUPS:
            spec = match.group(group)
            if spec:
                yield spec
                break


def extract_imports(
    source: str,
    max_candidates: int = MAX_CANDIDATES,
    exclude: Collection[str] = (),
) -> list[ImportCandidate]:
    """Find external packages referenced by source.

    Args:
        source: Component source text
        max_candidates: Maximum number of distinct packages returned
        exclude: Package names to skip before counting (e.g. baseline dependencies)

    Returns:
        Candidates de-duplicated by name in first-seen order

    Raises:
        InvalidArgumentError: If max_candidates is negative
    """
    if max_candidates < 0:
        raise InvalidArgumentError("max_candidates", "must be zero or positive")

    found: dict[str, list[str]] = {}

    for spec in iter_specifiers(source):
        name = package_root(spec)
        if name is None:
            continue
        if not is_safe_package_name(name):
            logger.debug("Ignoring import specifier %r (package %r not allowed)", spec, name)
            continue
        if name in exclude:
            continue
        if name in found:
            if spec not in found[name]:
                found[name].append(spec)
            continue
        if len(found) >= max_candidates:
            logger.debug("Candidate cap %d reached, ignoring %r", max_candidates, name)
            continue
        found[name] = [spec]

    return [ImportCandidate(name=name, specifiers=tuple(specs)) for name, specs in found.items()]
