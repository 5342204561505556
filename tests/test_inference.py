"""
Tests for keyword category inference.
"""

import pytest

from spendsmart.categorization import (
    CATEGORY_KEYWORDS,
    build_search_text,
    infer_category,
    match_category,
)
from spendsmart.models.transaction import Category


class TestInferCategory:
    """Tests for infer_category."""

    def test_store_name_match(self):
        """A known merchant maps to its category."""
        assert infer_category("Netflix") == "Entertainment"
        assert infer_category("Starbucks #123") == "Dining"
        assert infer_category("CVS Pharmacy") == "Health"

    def test_item_names_are_searched(self):
        """Item names count as much as the store name."""
        assert infer_category("", ["Milk"]) == "Groceries"
        assert infer_category("Corner 7", ["Shampoo"]) == "Personal Care"

    def test_matching_is_case_insensitive(self):
        """Search text is lower-cased before matching."""
        assert infer_category("WALMART SUPERCENTER") == "Groceries"

    def test_first_declared_category_wins(self):
        """bakery (Groceries) beats bar (Dining) because Groceries is declared first."""
        assert infer_category("bakery bar") == "Groceries"
        assert infer_category("Sunset Bar", ["Bakery roll"]) == "Groceries"

    def test_shared_keyword_goes_to_earlier_category(self):
        """"gas" is listed under Transport before Utilities."""
        assert infer_category("City Gas Co") == "Transport"

    def test_no_match_is_other(self):
        """Unknown text falls back to Other."""
        assert infer_category("Zzyzx LLC", ["Widget"]) == "Other"
        assert infer_category(None) == "Other"

    def test_substring_matching(self):
        """Keywords match inside longer words."""
        # "submarine" contains "sub"; Subscriptions is still the only hit
        assert infer_category("xq", ["submarine"]) == "Subscriptions"


class TestSearchText:
    """Tests for the search text builder."""

    def test_build_search_text(self):
        """Store and item names are joined and lower-cased."""
        assert build_search_text("Kroger", ["Milk", "Eggs"]) == "kroger milk eggs"

    def test_missing_values(self):
        """None store or item names become empty strings."""
        assert build_search_text(None, [None, "Tea"]) == "  tea"

    def test_match_category_returns_none(self):
        """match_category reports no match with None."""
        assert match_category("nothing here qq") is None


class TestKeywordTable:
    """Tests for the keyword table itself."""

    def test_category_order(self):
        """Keyword table follows the canonical category order, minus Other."""
        assert list(CATEGORY_KEYWORDS) == [c for c in Category if c != Category.OTHER]

    def test_keywords_are_lower_case(self):
        """Keywords must be lower case to match the lower-cased text."""
        for terms in CATEGORY_KEYWORDS.values():
            for term in terms:
                assert term == term.lower()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
