"""Chunk datastore: product_docs rows plus cosine nearest-neighbour search."""
from typing import Any, Dict, List, Optional, Sequence

import faiss
import numpy as np

from .database import SessionLocal
from .models import ProductDoc
from ..utils.logger import get_logger

logger = get_logger()


def _normalized_matrix(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    mat = np.asarray(vectors, dtype="float32")
    if mat.ndim == 1:
        mat = mat.reshape(1, -1)
    norms = np.linalg.norm(mat, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return np.ascontiguousarray(mat / norms, dtype="float32")


class ChunkStore:
    """Stores product chunks and answers similarity lookups over them."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    def replace_for_product(self, product_id: str, rows: List[Dict[str, Any]]) -> int:
        """Swap a product's chunks for ``rows`` in one transaction.

        Readers see either the previous generation or the new one, never a mix.
        Any failure rolls back and is re-raised.
        """
        db = self.session_factory()
        try:
            db.query(ProductDoc).filter(ProductDoc.product_id == str(product_id)).delete(synchronize_session=False)
            db.add_all([
                ProductDoc(
                    product_id=str(product_id),
                    content=r["content"],
                    metadata_=r.get("metadata") or {},
                    embedding=[float(x) for x in r["embedding"]],
                )
                for r in rows
            ])
            db.commit()
            return len(rows)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete_for_product(self, product_id: str) -> int:
        db = self.session_factory()
        try:
            n = db.query(ProductDoc).filter(ProductDoc.product_id == str(product_id)).delete(synchronize_session=False)
            db.commit()
            return n
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def count_for_product(self, product_id: str) -> int:
        db = self.session_factory()
        try:
            return db.query(ProductDoc).filter(ProductDoc.product_id == str(product_id)).count()
        finally:
            db.close()

    def match(self, query_embedding: Sequence[float], match_count: int,
              product_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Top ``match_count`` chunks by descending cosine similarity."""
        if match_count <= 0:
            return []
        db = self.session_factory()
        try:
            query = db.query(ProductDoc)
            if product_id:
                query = query.filter(ProductDoc.product_id == str(product_id))
            docs = query.all()
            rows = [
                {
                    "id": d.id,
                    "product_id": d.product_id,
                    "content": d.content,
                    "metadata": d.metadata_ or {},
                    "embedding": d.embedding,
                }
                for d in docs
            ]
        finally:
            db.close()

        dim = len(query_embedding)
        usable = [r for r in rows if r["embedding"] and len(r["embedding"]) == dim]
        if len(usable) < len(rows):
            logger.warning(f"[chunks] skipped {len(rows) - len(usable)} chunk(s) with embedding dimension != {dim}")
        if not usable or dim == 0:
            return []

        # Inner product over unit vectors is cosine similarity
        index = faiss.IndexFlatIP(dim)
        index.add(_normalized_matrix([r["embedding"] for r in usable]))
        k = min(match_count, len(usable))
        scores, idxs = index.search(_normalized_matrix(query_embedding), k)

        out = []
        for i, s in zip(idxs[0].tolist(), scores[0].tolist()):
            if i == -1:  # -1 means no result
                continue
            r = usable[i]
            out.append({
                "id": r["id"],
                "product_id": r["product_id"],
                "content": r["content"],
                "metadata": r["metadata"],
                "similarity": float(s),
            })
        return out
