"""Artifact classification by ordered text-sniffing rules.

The rule table is evaluated top to bottom and the first match wins.
A full document root always classifies as markup, even when component
signals appear later in the text.
"""

import re
from dataclasses import dataclass

from sandpreview.core.schemas import ArtifactKind


@dataclass(frozen=True)
class ClassificationRule:
    """A named pattern and the kind it implies."""

    name: str
    pattern: re.Pattern[str]
    kind: ArtifactKind

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        name="document-root",
        # Root names must end the tag name, so <header> and <Head.Title> are not roots
        pattern=re.compile(r"<!doctype\s+html|<(?:html|head|body)\b(?![-\w.:])", re.IGNORECASE),
        kind=ArtifactKind.MARKUP,
    ),
    ClassificationRule(
        name="component-signals",
        pattern=re.compile(r"from\s+['\"]react['\"]|import\s+React\b|export\s+default\s+"),
        kind=ArtifactKind.COMPONENT_SCRIPT,
    ),
    ClassificationRule(
        name="leading-tag",
        pattern=re.compile(r"^\s*<"),
        kind=ArtifactKind.MARKUP,
    ),
)

DEFAULT_RULE_NAME = "default"
DEFAULT_KIND = ArtifactKind.MARKUP


def explain(text: str | None) -> tuple[ArtifactKind, str]:
    """Classify text and report which rule decided.

    Returns:
        (kind, rule name); the rule name is "default" when nothing matched
    """
    if not text:
        return DEFAULT_KIND, DEFAULT_RULE_NAME

    for rule in CLASSIFICATION_RULES:
        if rule.matches(text):
            return rule.kind, rule.name

    return DEFAULT_KIND, DEFAULT_RULE_NAME


def classify(text: str | None) -> ArtifactKind:
    """Decide whether text is markup or a component script. Never raises."""
    kind, _ = explain(text)
    return kind
