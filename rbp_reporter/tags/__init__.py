"""
Tag normalisation and classification.
"""

from rbp_reporter.tags.config import (
    CATEGORY_META,
    TAG_CATEGORIES,
    TAG_VALIDATION_RULES,
    UNCATEGORIZED,
    TagValidationResult,
    TagValidationRules,
    classify_tag,
    get_all_tags,
    get_tag_category,
    is_tag_in_category,
    validate_tag,
)
from rbp_reporter.tags.utils import (
    CATEGORY_PRIORITY,
    FormattedTag,
    TagStats,
    filter_tags_by_category,
    format_tag_for_display,
    get_tag_stats,
    get_tag_warnings,
    get_unique_tags,
    group_tags_by_category,
    normalize_tag,
    process_tags,
    sort_tags_by_category,
    tag_badge_css,
)

__all__ = [
    "CATEGORY_META",
    "CATEGORY_PRIORITY",
    "TAG_CATEGORIES",
    "TAG_VALIDATION_RULES",
    "UNCATEGORIZED",
    "FormattedTag",
    "TagStats",
    "TagValidationResult",
    "TagValidationRules",
    "classify_tag",
    "filter_tags_by_category",
    "format_tag_for_display",
    "get_all_tags",
    "get_tag_category",
    "get_tag_stats",
    "get_tag_warnings",
    "get_unique_tags",
    "group_tags_by_category",
    "is_tag_in_category",
    "normalize_tag",
    "process_tags",
    "sort_tags_by_category",
    "tag_badge_css",
    "validate_tag",
]
