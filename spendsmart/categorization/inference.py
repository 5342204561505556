"""
Keyword-based Category Inference

Used when the AI service leaves the category out, says "Uncategorized",
or answers with something outside the allowed list.

DESIGN DECISION: Categories are tested in the declared order of
CATEGORY_KEYWORDS and the first one with any substring hit wins.
Several keywords overlap between categories ("gas", "ticket", "book",
"bakery"/"bar"), so the order is part of the behaviour.
"""

from typing import Iterable, Optional

from spendsmart.models.transaction import Category


CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.GROCERIES: (
        "grocery", "market", "food", "supermarket", "mart", "produce", "fruit",
        "vegetable", "meat", "milk", "egg", "bread", "bakery", "kroger", "walmart",
        "whole foods", "trader joe", "safeway", "publix", "aldi", "lidl", "wegmans",
        "tesco", "sainsbury",
    ),
    Category.DINING: (
        "restaurant", "cafe", "coffee", "starbucks", "diner", "bistro", "grill",
        "bar", "pizza", "burger", "mcdonald", "kfc", "taco", "chipotle", "subway",
        "eatery", "kitchen", "steakhouse", "baker", "dunkin", "domino", "wendy",
    ),
    Category.TRANSPORT: (
        "fuel", "gas", "petrol", "shell", "bp", "chevron", "exxon", "uber", "lyft",
        "taxi", "train", "bus", "metro", "transit", "airline", "flight", "parking",
        "automotive", "car wash", "ticket", "transport",
    ),
    Category.UTILITIES: (
        "electric", "water", "power", "energy", "gas", "internet", "wifi",
        "broadband", "cable", "phone", "mobile", "at&t", "verizon", "t-mobile",
        "comcast", "xfinity", "bill", "sewer", "trash", "waste",
    ),
    Category.SHOPPING: (
        "amazon", "target", "costco", "best buy", "apple", "clothing", "apparel",
        "shoe", "fashion", "mall", "retail", "shop", "store", "electronics",
        "home depot", "lowe", "ikea", "book", "gift",
    ),
    Category.ENTERTAINMENT: (
        "movie", "cinema", "theater", "theatre", "netflix", "spotify", "hulu",
        "disney", "game", "nintendo", "steam", "playstation", "xbox", "concert",
        "ticket", "event", "museum", "bowling", "amusement",
    ),
    Category.HEALTH: (
        "pharmacy", "drug", "cvs", "walgreens", "rite aid", "doctor", "physician",
        "hospital", "clinic", "dental", "dentist", "medical", "health", "vitamin",
        "supplement", "gym", "fitness", "workout", "yoga",
    ),
    Category.HOUSING: (
        "rent", "mortgage", "apartment", "housing", "maintenance", "repair",
        "plumber", "contractor", "furniture", "decor", "lease",
    ),
    Category.EDUCATION: (
        "school", "university", "college", "tuition", "book", "course", "class",
        "training", "udemy", "coursera", "student",
    ),
    Category.PERSONAL_CARE: (
        "hair", "salon", "barber", "spa", "nail", "beauty", "cosmetic", "lotion",
        "shampoo", "soap", "grooming",
    ),
    Category.TRAVEL: (
        "hotel", "motel", "airbnb", "resort", "booking", "expedia", "trip",
        "vacation", "luggage", "tour",
    ),
    Category.SUBSCRIPTIONS: (
        "subscription", "sub", "monthly", "yearly", "renewal", "membership",
        "prime", "premium",
    ),
}


def build_search_text(store_name: Optional[str], item_names: Iterable[Optional[str]]) -> str:
    """Lower-cased "store item1 item2 ..." string that keywords are matched against."""
    names = " ".join(name or "" for name in item_names)
    return f"{store_name or ''} {names}".lower()


def match_category(text: str) -> Optional[Category]:
    """First category (in declared order) with a keyword contained in text."""
    for category, terms in CATEGORY_KEYWORDS.items():
        if any(term in text for term in terms):
            return category
    return None


def infer_category(store_name: Optional[str], item_names: Iterable[Optional[str]] = ()) -> str:
    """
    Best-guess category for a store and its items.

    Returns the category name, or "Other" when no keyword matches.
    """
    category = match_category(build_search_text(store_name, item_names))
    return (category or Category.OTHER).value
