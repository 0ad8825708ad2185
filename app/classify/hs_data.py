# app/classify/hs_data.py
"""
Seed reference data for the product classifier: common e-commerce HS codes
with their keyword phrases, a coarse category index, the closed set of HS
chapters and the keyword families read by the heuristic rule.

Keyword order matters: the exact-match pass takes the first keyword that is
a substring of the product text, so longer phrases that contain a shorter
keyword ("headphone" contains "phone") are listed first.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class HSEntry:
    code: str
    description: str
    keywords: Tuple[str, ...] = ()
    duty_rate: Optional[float] = None
    vat_rate: Optional[float] = None
    category: Optional[str] = None


MISC_CODE = "9999999999"

SEED_ENTRIES: Tuple[HSEntry, ...] = (
    # electronics
    HSEntry("8518300000", "Headphones and earphones",
            ("headphone", "earphone", "headset", "airpods", "earbuds"), 0.0, 0.19, "electronics"),
    HSEntry("8517120000", "Mobile and smart phones",
            ("smartphone", "iphone", "android phone", "mobile phone", "phone"), 0.0, 0.19, "electronics"),
    HSEntry("8471300000", "Portable computers",
            ("laptop", "notebook computer", "macbook", "chromebook", "computer"), 0.0, 0.19, "electronics"),
    HSEntry("9013200000", "Lasers and laser pointers",
            ("laser pointer", "laser"), 0.05, 0.19, "electronics"),
    # clothing, footwear, accessories
    HSEntry("6109100000", "T-shirts of cotton",
            ("t-shirt", "tshirt", "tank top"), 0.12, 0.19, "clothing"),
    HSEntry("6203420000", "Men's trousers of cotton",
            ("trousers", "pants", "jeans", "chinos"), 0.12, 0.19, "clothing"),
    HSEntry("6402990000", "Other footwear",
            ("sneakers", "trainers", "shoes", "sandals"), 0.17, 0.19, "footwear"),
    HSEntry("6505000000", "Hats and headgear",
            ("baseball cap", "beanie", "bucket hat", "sun hat"), 0.12, 0.19, "accessories"),
    # home
    HSEntry("9403300000", "Wooden office furniture",
            ("office chair", "desk", "chair", "bookshelf", "furniture"), 0.0, 0.19, "home"),
    HSEntry("6302210000", "Bed linen of cotton",
            ("bed sheet", "duvet cover", "pillowcase"), 0.12, 0.19, "home"),
    HSEntry("3924100000", "Plastic tableware and kitchenware",
            ("tableware", "lunch box", "plastic plate", "plastic bowl"), 0.07, 0.19, "home"),
    # beauty
    HSEntry("3304200000", "Eye make-up preparations",
            ("eyeshadow", "mascara", "eyeliner"), 0.0, 0.19, "beauty"),
    HSEntry("3401110000", "Soap for toilet use",
            ("soap", "hand wash"), 0.0, 0.19, "beauty"),
    HSEntry("3305100000", "Shampoos",
            ("shampoo", "conditioner"), 0.0, 0.19, "beauty"),
    # toys and sports
    HSEntry("9503008900", "Other toys",
            ("jigsaw puzzle", "plush", "toy"), 0.0, 0.19, "toys"),
    HSEntry("9506910000", "Exercise and fitness equipment",
            ("dumbbell", "treadmill", "yoga mat", "kettlebell", "fitness"), 0.0, 0.19, "sports"),
    # books and stationery
    HSEntry("4901990000", "Printed books",
            ("paperback", "hardcover", "textbook", "novel", "book"), 0.0, 0.07, "books"),
    HSEntry("9608100000", "Ballpoint pens",
            ("ballpoint", "gel pen", "fountain pen"), 0.0, 0.19, "stationery"),
    # food
    HSEntry("1704900000", "Sugar confectionery",
            ("chocolate", "candy", "sweets", "gummies"), 0.17, 0.07, "food"),
    HSEntry("2101110000", "Coffee extracts and concentrates",
            ("instant coffee", "coffee"), 0.05, 0.07, "food"),
    # jewellery
    HSEntry("7113191000", "Silver jewellery",
            ("silver jewelry", "silver necklace", "silver ring"), 0.025, 0.19, "jewelry"),
    HSEntry("7117190000", "Imitation jewellery of base metal",
            ("jewelry", "necklace", "bracelet", "earrings"), 0.04, 0.19, "jewelry"),
    # residual
    HSEntry(MISC_CODE, "Unclassified goods", (), None, None, None),
)

CATEGORY_INDEX: Dict[str, str] = {
    "electronics": "8517120000",
    "mobile_phones": "8517120000",
    "computers": "8471300000",
    "audio": "8518300000",
    "clothing": "6109100000",
    "apparel": "6109100000",
    "shoes": "6402990000",
    "footwear": "6402990000",
    "accessories": "6505000000",
    "home": "9403300000",
    "home_garden": "9403300000",
    "furniture": "9403300000",
    "kitchen": "3924100000",
    "bedding": "6302210000",
    "beauty": "3304200000",
    "cosmetics": "3304200000",
    "personal_care": "3401110000",
    "toys": "9503008900",
    "sports": "9506910000",
    "fitness": "9506910000",
    "books": "4901990000",
    "stationery": "9608100000",
    "food": "1704900000",
    "jewelry": "7117190000",
}

# HS chapters 01-97; chapter 77 is reserved for future use.
VALID_CHAPTERS: FrozenSet[str] = frozenset(
    f"{n:02d}" for n in range(1, 98) if n != 77
)

# Coarse category for codes that are not in the table (custom or loaded
# codes without a label), keyed by chapter.
CHAPTER_CATEGORIES: Dict[str, str] = {
    "17": "food", "18": "food", "19": "food", "20": "food", "21": "food",
    "33": "beauty", "34": "beauty",
    "39": "home",
    "49": "books",
    "61": "clothing", "62": "clothing",
    "63": "home",
    "64": "footwear",
    "65": "accessories",
    "71": "jewelry",
    "84": "electronics", "85": "electronics",
    "94": "home",
    "95": "toys",
    "96": "stationery",
}

# Heuristic rule: (family, keywords, HS code, confidence). Order is the
# tie-break when two families score the same density.
HEURISTIC_FAMILIES: Tuple[Tuple[str, Tuple[str, ...], str, float], ...] = (
    ("electronics", ("phone", "computer", "electronic", "charger", "usb", "tablet"), "8517120000", 0.8),
    ("clothing", ("shirt", "pants", "shoes", "dress", "jacket", "sock"), "6109100000", 0.75),
    ("home", ("home", "furniture", "kitchen", "lamp", "sofa", "decor"), "9403300000", 0.7),
)
HEURISTIC_MIN_DENSITY = 0.3
RESIDUAL_CONFIDENCE = 0.3
