"""
Tag category configuration.

Categories are a static lookup table so the meaning of a tag can be audited
without looking at any particular test suite.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional, Pattern, Tuple

from rbp_reporter.core.types import TagMeta


@dataclass(frozen=True)
class TagCategory:
    """Display information of a tag category."""

    color: str
    icon: str
    description: str


TAG_CATEGORIES: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "priority": ("smoke", "critical", "regression", "low-priority", "high-priority", "medium-priority"),
    "type": ("e2e", "api", "visual", "unit", "integration", "component"),
    "area": ("ui", "backend", "database", "auth", "booking", "admin", "contact", "room", "report", "login", "logout"),
    "status": ("todo", "wip", "skip", "blocked", "bug", "fix"),
    "environment": ("local", "staging", "production", "dev"),
    "feature": ("booking", "authentication", "admin", "reports", "contact-form"),
})

CATEGORY_META: Mapping[str, TagCategory] = MappingProxyType({
    "priority": TagCategory("#3498db", "priority", "Test priority level"),
    "type": TagCategory("#9b59b6", "category", "Test type classification"),
    "area": TagCategory("#e67e22", "place", "Functional area or module"),
    "status": TagCategory("#7f8c8d", "flag", "Test development status"),
    "environment": TagCategory("#16a085", "public", "Target environment"),
    "feature": TagCategory("#e74c3c", "star", "Feature or capability being tested"),
})

UNCATEGORIZED = "uncategorized"
UNCATEGORIZED_META = TagCategory("#95a5a6", "label", "Uncategorized tag")


@dataclass(frozen=True)
class TagValidationRules:
    """Rules every normalised tag must satisfy."""

    min_length: int = 2
    max_length: int = 50
    allowed_chars: Pattern[str] = field(default=re.compile(r"^[a-zA-Z0-9_-]+$"))
    required_prefix: Optional[str] = None


TAG_VALIDATION_RULES = TagValidationRules()


@dataclass(frozen=True)
class TagValidationResult:
    """Outcome of validating a single tag."""

    valid: bool
    error: Optional[str] = None


def get_tag_category(tag: str) -> Optional[str]:
    """Return the first category listing the tag, or None."""
    normalized_tag = (tag or "").lower()

    for category, tags in TAG_CATEGORIES.items():
        if normalized_tag in tags:
            return category

    return None


def classify_tag(tag: str) -> TagMeta:
    """Look up category, colour and icon of a tag."""
    category = get_tag_category(tag)
    if category is not None:
        meta = CATEGORY_META[category]
        return TagMeta(category=category, color=meta.color, icon=meta.icon)

    return TagMeta(category=None, color=UNCATEGORIZED_META.color, icon=UNCATEGORIZED_META.icon)


def validate_tag(
    tag: str, rules: TagValidationRules = TAG_VALIDATION_RULES
) -> TagValidationResult:
    """Validate a tag, reporting the first rule it violates."""
    if not tag or not tag.strip():
        return TagValidationResult(False, "Tag cannot be empty")

    trimmed = tag.strip()

    if len(trimmed) < rules.min_length:
        return TagValidationResult(False, f"Tag must be at least {rules.min_length} characters")

    if len(trimmed) > rules.max_length:
        return TagValidationResult(False, f"Tag must be no more than {rules.max_length} characters")

    if not rules.allowed_chars.match(trimmed):
        return TagValidationResult(
            False, "Tag can only contain letters, numbers, hyphens, and underscores"
        )

    if rules.required_prefix and not trimmed.startswith(rules.required_prefix):
        return TagValidationResult(False, f"Tag must start with '{rules.required_prefix}'")

    return TagValidationResult(True)


def get_all_tags() -> List[str]:
    """Every known tag, de-duplicated and sorted."""
    return sorted({tag for tags in TAG_CATEGORIES.values() for tag in tags})


def is_tag_in_category(tag: str, category: str) -> bool:
    """Check if a tag is listed under a specific category."""
    return (tag or "").lower() in TAG_CATEGORIES.get(category, ())
