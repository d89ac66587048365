"""Catalog datastore access: filtered listing, lookups and token search.

The core treats the catalog as read-only. Every method opens its own session
and returns ProductRecord snapshots, never live ORM rows.
"""
from typing import List, Optional, Sequence

from sqlalchemy import or_

from .database import SessionLocal
from .models import Product
from ..schemas.io_models import ProductRecord
from ..utils.normalize import normalize_product


LIKE_ESCAPE = "\\"


def _contains(text: str) -> str:
    """ILIKE pattern matching ``text`` as a literal substring."""
    for ch in (LIKE_ESCAPE, "%", "_"):
        text = text.replace(ch, LIKE_ESCAPE + ch)
    return f"%{text}%"


def _records(rows) -> List[ProductRecord]:
    out = []
    for r in rows:
        rec = normalize_product(r)
        if rec is not None:
            out.append(rec)
    return out


class CatalogStore:
    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    def list_products(self, q: Optional[str] = None, category: Optional[str] = None,
                      price_min: Optional[float] = None, price_max: Optional[float] = None,
                      limit: int = 12, offset: int = 0) -> List[ProductRecord]:
        """Newest-first listing with optional text, category and price filters."""
        db = self.session_factory()
        try:
            query = db.query(Product)
            text = (q or "").strip()
            if text:
                term = _contains(text)
                query = query.filter(or_(Product.name.ilike(term, escape=LIKE_ESCAPE),
                                         Product.description.ilike(term, escape=LIKE_ESCAPE)))
            if category and category != "all":
                query = query.filter(Product.category == category)
            if price_min is not None:
                query = query.filter(Product.price >= float(price_min))
            if price_max is not None:
                query = query.filter(Product.price <= float(price_max))
            rows = query.order_by(Product.created_at.desc()).offset(max(offset, 0)).limit(limit).all()
            return _records(rows)
        finally:
            db.close()

    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        db = self.session_factory()
        try:
            row = db.query(Product).filter(Product.id == str(product_id)).first()
            return normalize_product(row) if row is not None else None
        finally:
            db.close()

    def get_categories(self) -> List[str]:
        db = self.session_factory()
        try:
            rows = db.query(Product.category).distinct().order_by(Product.category).all()
            return [r[0] for r in rows if r[0]]
        finally:
            db.close()

    def get_similar_by_category(self, category: str, exclude_id: Optional[str] = None,
                                limit: int = 6) -> List[ProductRecord]:
        db = self.session_factory()
        try:
            query = db.query(Product).filter(Product.category == category)
            if exclude_id:
                query = query.filter(Product.id != str(exclude_id))
            return _records(query.order_by(Product.rating.desc()).limit(limit).all())
        finally:
            db.close()

    def find_by_tokens(self, tokens: Sequence[str], limit: int) -> List[ProductRecord]:
        """Products whose name or description contains any token (case-insensitive)."""
        if not tokens:
            return []
        db = self.session_factory()
        try:
            clauses = []
            for tok in tokens:
                term = _contains(tok)
                clauses.append(Product.name.ilike(term, escape=LIKE_ESCAPE))
                clauses.append(Product.description.ilike(term, escape=LIKE_ESCAPE))
            rows = (
                db.query(Product)
                .filter(or_(*clauses))
                .order_by(Product.rating.desc(), Product.created_at.desc())
                .limit(limit)
                .all()
            )
            return _records(rows)
        finally:
            db.close()

    def top_in_category(self, category: str, limit: int) -> List[ProductRecord]:
        db = self.session_factory()
        try:
            rows = (
                db.query(Product)
                .filter(Product.category == category)
                .order_by(Product.rating.desc(), Product.created_at.desc())
                .limit(limit)
                .all()
            )
            return _records(rows)
        finally:
            db.close()

    def all_products(self) -> List[ProductRecord]:
        db = self.session_factory()
        try:
            return _records(db.query(Product).order_by(Product.created_at).all())
        finally:
            db.close()


# Provide a module-level singleton for convenience
_store: Optional[CatalogStore] = None


def get_catalog_store() -> CatalogStore:
    global _store
    if _store is None:
        _store = CatalogStore()
    return _store
