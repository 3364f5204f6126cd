"""Pure source-text analysis: artifact classification and import discovery."""

from sandpreview.analysis.classifier import CLASSIFICATION_RULES, ClassificationRule, classify, explain
from sandpreview.analysis.imports import (
    MAX_CANDIDATES,
    extract_imports,
    is_safe_package_name,
    package_root,
    strip_comments,
)

__all__ = [
    "CLASSIFICATION_RULES",
    "ClassificationRule",
    "classify",
    "explain",
    "MAX_CANDIDATES",
    "extract_imports",
    "is_safe_package_name",
    "package_root",
    "strip_comments",
]
