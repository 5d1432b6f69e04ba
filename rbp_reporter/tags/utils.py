"""
Tag processing helpers used by the reporters and the report templates.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from rbp_reporter.core.types import NormalizedTag
from rbp_reporter.tags.config import UNCATEGORIZED, classify_tag, validate_tag

_LEADING_MARKERS = re.compile(r"^[@\s]+")

CATEGORY_PRIORITY: Mapping[str, int] = MappingProxyType({
    "priority": 1,
    "type": 2,
    "area": 3,
    "feature": 4,
    "environment": 5,
    "status": 6,
    UNCATEGORIZED: 7,
})


def normalize_tag(tag: Optional[str]) -> str:
    """Strip the leading ``@`` marker and surrounding whitespace.

    Never raises; ``None`` and blank input give an empty string.
    """
    if not tag:
        return ""
    return _LEADING_MARKERS.sub("", tag).strip()


def process_tags(tags: Iterable[str]) -> List[NormalizedTag]:
    """Normalise, validate and classify tags, keeping input order."""
    processed = []
    for tag in tags:
        normalized = normalize_tag(tag)
        validation = validate_tag(normalized)
        meta = classify_tag(normalized)
        processed.append(
            NormalizedTag(
                original=tag,
                normalized=normalized,
                category=meta.category,
                color=meta.color,
                icon=meta.icon,
                valid=validation.valid,
                error=validation.error,
            )
        )
    return processed


def sort_tags_by_category(processed_tags: Iterable[NormalizedTag]) -> List[NormalizedTag]:
    """Order tags by category priority, then alphabetically. Display only."""
    def sort_key(tag: NormalizedTag):
        category = tag.category or UNCATEGORIZED
        return (CATEGORY_PRIORITY.get(category, 999), tag.normalized.lower(), tag.normalized)

    return sorted(processed_tags, key=sort_key)


def group_tags_by_category(tags: Iterable[NormalizedTag]) -> Dict[str, List[NormalizedTag]]:
    grouped: Dict[str, List[NormalizedTag]] = {UNCATEGORIZED: []}
    for tag in tags:
        grouped.setdefault(tag.category or UNCATEGORIZED, []).append(tag)
    return grouped


def filter_tags_by_category(tags: Iterable[NormalizedTag], category: str) -> List[NormalizedTag]:
    return [tag for tag in tags if tag.category == category]


def get_unique_tags(tags: Iterable[str]) -> List[str]:
    """Unique normalised tags, sorted."""
    return sorted({normalize_tag(tag) for tag in tags})


def tag_badge_css(color: str) -> str:
    """Inline CSS for a tag badge in the given colour."""
    return f"background-color: {color}15; color: {color}; border: 1px solid {color}40;"


@dataclass
class TagStats:
    """Tag counts for a set of processed tags."""

    total: int = 0
    by_category: Dict[str, int] = field(default_factory=dict)
    invalid: int = 0


def get_tag_stats(all_tags: Iterable[NormalizedTag]) -> TagStats:
    stats = TagStats()
    for tag in all_tags:
        stats.total += 1
        if not tag.valid:
            stats.invalid += 1
            continue
        category = tag.category or UNCATEGORIZED
        stats.by_category[category] = stats.by_category.get(category, 0) + 1
    return stats


def get_tag_warnings(processed_tags: Iterable[NormalizedTag]) -> List[str]:
    """Human readable warnings for every invalid tag."""
    return [
        f'Invalid tag "{tag.original}": {tag.error}'
        for tag in processed_tags
        if not tag.valid and tag.error
    ]


@dataclass(frozen=True)
class FormattedTag:
    """A tag ready to be shown as a badge."""

    name: str
    category: Optional[str]
    color: str
    icon: str


def format_tag_for_display(tag: str) -> FormattedTag:
    normalized = normalize_tag(tag)
    meta = classify_tag(normalized)
    return FormattedTag(name=normalized, category=meta.category, color=meta.color, icon=meta.icon)
