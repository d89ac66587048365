"""Normalization helpers for external shapes.

Catalog rows, HTTP payloads and retrieval results arrive with either
snake_case or camelCase keys (and sometimes as bare strings). Everything is
mapped here to the canonical models in schemas/io_models.py so the core never
has to guess at field names.
"""
import math
from typing import Any, Dict, Iterable, List, Optional

from ..schemas.io_models import ProductRecord, RetrievedChunk

_PRODUCT_ALIASES = {
    "id": ("id", "product_id", "productId"),
    "name": ("name", "title"),
    "description": ("description", "desc"),
    "price": ("price",),
    "category": ("category",),
    "rating": ("rating",),
    "image_url": ("image_url", "imageUrl", "image"),
    "specs": ("specs", "specifications"),
    "created_at": ("created_at", "createdAt"),
}


def _first(data: Dict[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        if k in data and data[k] is not None:
            return data[k]
    return None


def to_float(value: Any) -> Optional[float]:
    """Parse a number, returning None for anything missing, invalid or non-finite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(str(value).replace("$", "").replace(",", "").strip())
    except (TypeError, ValueError):
        return None
    if not math.isfinite(f):
        return None
    return f


def _as_dict(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, ProductRecord):
        return raw.model_dump()
    # ORM rows and simple objects: only read the known attribute names
    out = {}
    for keys in _PRODUCT_ALIASES.values():
        for k in keys:
            value = getattr(raw, k, None)
            if value is not None:
                out[k] = value
    return out


def normalize_product(raw: Any) -> Optional[ProductRecord]:
    """Map a product in any accepted shape to a ProductRecord (None if unusable)."""
    if raw is None:
        return None
    if isinstance(raw, ProductRecord):
        return raw
    data = _as_dict(raw)
    fields = {name: _first(data, keys) for name, keys in _PRODUCT_ALIASES.items()}
    if fields["id"] is None:
        return None

    specs = fields["specs"]
    if not isinstance(specs, dict):
        specs = {}

    description = fields["description"]
    return ProductRecord(
        id=str(fields["id"]),
        name=str(fields["name"] or ""),
        description=str(description) if description is not None else None,
        price=to_float(fields["price"]),
        category=str(fields["category"] or ""),
        rating=to_float(fields["rating"]),
        image_url=fields["image_url"],
        specs=specs,
        created_at=fields["created_at"],
    )


def normalize_chunks(raw: Any) -> List[RetrievedChunk]:
    """Accept a list (or single item) of strings, dicts or RetrievedChunk objects."""
    if raw is None:
        return []
    items = raw if isinstance(raw, (list, tuple)) else [raw]
    out: List[RetrievedChunk] = []
    for item in items:
        if item is None:
            continue
        if isinstance(item, RetrievedChunk):
            out.append(item)
            continue
        if isinstance(item, str):
            text, score = item, None
        elif isinstance(item, dict):
            text = _first(item, ("text", "content"))
            score = _first(item, ("similarity", "score"))
        else:
            text, score = str(item), None
        if not text or not str(text).strip():
            continue
        sim = to_float(score)
        sim = 0.0 if sim is None else min(max(sim, 0.0), 1.0)
        out.append(RetrievedChunk(text=str(text), similarity=sim))
    return out
