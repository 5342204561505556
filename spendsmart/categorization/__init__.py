"""Category inference package."""

from spendsmart.categorization.inference import (
    CATEGORY_KEYWORDS,
    build_search_text,
    infer_category,
    match_category,
)

__all__ = [
    "CATEGORY_KEYWORDS",
    "build_search_text",
    "infer_category",
    "match_category",
]
