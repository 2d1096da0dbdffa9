from typing import Any, Iterable, List


def normalize(value: Any) -> str:
    """Shop/category name comparison key: trimmed, lowercased, '' for None."""
    return str(value if value is not None else "").strip().lower()


def raw_categories(admin_doc: dict) -> list:
    """
    `categories` (list) wins over the legacy singular `category` field.
    Anything else yields no categories.
    """
    data = admin_doc or {}
    if isinstance(data.get("categories"), list):
        return data["categories"]
    if data.get("category"):
        return [data["category"]]
    return []


def normalize_categories(values: Iterable[Any]) -> List[str]:
    """Trim, lowercase, drop empties and dedupe, keeping first-seen order."""
    return list(dict.fromkeys(c for c in (normalize(v) for v in values) if c))
