"""BOM sheet schema: canonical fields and their header aliases."""

from typing import Dict, List, Tuple

# Canonical BOM sheet fields in the order rows are written back
STANDARD_HEADERS = [
    "level",
    "item_number",
    "name",
    "description",
    "category",
    "lifecycle",
    "quantity",
]

# Header labels used when rendering rows (pull)
HEADER_LABELS = {
    "level": "Level",
    "item_number": "Item Number",
    "name": "Name",
    "description": "Description",
    "category": "Category",
    "lifecycle": "Lifecycle",
    "quantity": "Qty",
}

# Mapping of common header variations to canonical fields
COLUMN_MAPPINGS: Dict[str, List[str]] = {
    "level": [
        "level", "lvl", "bom level", "bom_level", "indent", "indent level",
        "depth",
    ],
    "item_number": [
        "item number", "item_number", "itemnumber", "item no", "item_no",
        "item#", "item #", "part number", "part_number", "partnumber",
        "part no", "part_no", "part#", "part #", "number",
    ],
    "name": [
        "name", "item name", "item_name", "part name", "part_name",
    ],
    "description": [
        "description", "item description", "item_description", "desc",
        "part description",
    ],
    "category": [
        "category", "item category", "item_category", "class", "type",
    ],
    "lifecycle": [
        "lifecycle", "lifecycle phase", "lifecycle_phase", "lifecyclephase",
        "phase", "status",
    ],
    "quantity": [
        "quantity", "qty", "qty.", "qnty", "count", "amount",
    ],
}

# Fuzzy fallbacks: a header matches a field when it contains every token of
# any one of these groups
FUZZY_TOKENS: Dict[str, List[Tuple[str, ...]]] = {
    "item_number": [("item", "number"), ("part", "number"), ("item", "no"), ("part", "no")],
    "quantity": [("qty",), ("quantity",)],
    "level": [("level",)],
    "category": [("category",)],
    "lifecycle": [("lifecycle",)],
    "description": [("description",)],
}

# Item-store field names for the five compared BOM fields, with their labels
COMPARED_FIELDS: List[Tuple[str, str]] = [
    ("name", "Name"),
    ("description", "Description"),
    ("category", "Category"),
    ("lifecycle", "Lifecycle"),
    ("quantity", "Quantity"),
]

__all__ = [
    "STANDARD_HEADERS",
    "HEADER_LABELS",
    "COLUMN_MAPPINGS",
    "FUZZY_TOKENS",
    "COMPARED_FIELDS",
]
