"""Closed option sets for the custom order wizard and their display names."""

PROJECT_TYPES: dict[str, str] = {
    "figurine": "Figurines & Miniatures",
    "prototype": "Prototypes & Parts",
    "decorative": "Decorative Items",
    "custom": "Something Else",
}

MATERIALS: dict[str, str] = {
    "pla": "PLA",
    "abs": "ABS",
    "petg": "PETG",
    "tpu": "TPU",
}

SIZES: dict[str, str] = {
    "small": "Small (< 5cm)",
    "medium": "Medium (5-10cm)",
    "large": "Large (10-20cm)",
    "xlarge": "X-Large (> 20cm)",
}

COLORS: dict[str, str] = {
    "red": "Red",
    "blue": "Blue",
    "green": "Green",
    "yellow": "Yellow",
    "purple": "Purple",
    "black": "Black",
    "white": "White",
    "orange": "Orange",
}

TIMELINES: dict[str, str] = {
    "standard": "Standard (3-5 days)",
    "rush": "Rush (24-48 hours)",
}
DEFAULT_TIMELINE = "standard"

OPTION_LABELS: dict[str, str] = {
    "finishing": "Professional Finishing",
    "painting": "Hand Painting",
    "rush": "Rush Order",
    "need_design": "Design Help",
}

# Non-binding estimate: base price (USD) per material x size multiplier.
BASE_PRICES: dict[str, int] = {"pla": 10, "abs": 15, "petg": 20, "tpu": 25}
SIZE_MULTIPLIERS: dict[str, int] = {"small": 1, "medium": 2, "large": 3, "xlarge": 5}
