#!/usr/bin/env python3
"""
Indexing module for the shopping assistant.

Turns a product into fixed-size text chunks, embeds them in document mode and
stores them, replacing whatever chunks the product had before.
"""

from typing import Any, Dict, Iterable, List
from .config import Config
from .embed import DOCUMENT, EmbeddingClient
from ..data.chunk_store import ChunkStore
from ..schemas.io_models import IndexReport, ProductRecord
from ..utils.logger import get_logger
from ..utils.normalize import normalize_product

logger = get_logger()


def render_product_text(product: ProductRecord) -> str:
    """Name, category, description and flattened specs as one blob."""
    lines = []
    if product.name and product.name.strip():
        lines.append(product.name.strip())
    if product.category and product.category.strip():
        lines.append(f"Category: {product.category.strip()}")
    if product.description and product.description.strip():
        lines.append(product.description.strip())
    for key, value in (product.specs or {}).items():
        if value is None or str(value).strip() == "" or not str(key).strip():
            continue
        lines.append(f"{str(key).replace('_', ' ')}: {value}")
    return "\n".join(lines)


def split_text(text: str, size: int = None) -> List[str]:
    """Slice text into pieces of at most ``size`` characters (length only)."""
    size = size or Config.CHUNK_SIZE
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [text[i:i + size] for i in range(0, len(text), size)]


class ChunkIndexer:
    """Builds and stores the retrievable chunks of products."""

    def __init__(self, embed_client: EmbeddingClient = None, store: ChunkStore = None, chunk_size: int = None):
        self.embed_client = embed_client or EmbeddingClient()
        self.store = store or ChunkStore()
        self.chunk_size = chunk_size or Config.CHUNK_SIZE

    def index_product(self, product: Any) -> int:
        """
        (Re)index one product.

        Args:
            product: Product in any accepted shape

        Returns:
            Number of chunks written. Errors from embedding or insert propagate.
        """
        record = normalize_product(product)
        if record is None:
            raise ValueError("product has no id")

        blob = render_product_text(record)
        slices = split_text(blob, self.chunk_size) if blob.strip() else []
        if not slices:
            self.store.delete_for_product(record.id)
            logger.info(f"[INDEX] {record.id}: no indexable text, 0 chunks")
            return 0

        rows: List[Dict[str, Any]] = []
        for i, content in enumerate(slices):
            rows.append({
                "content": content,
                "metadata": {"chunk": i, "name": record.name, "category": record.category},
                "embedding": self.embed_client.embed(content, DOCUMENT),
            })

        # Embeddings are computed before touching the store so a failure leaves the old set intact
        written = self.store.replace_for_product(record.id, rows)
        logger.info(f"[INDEX] {record.id}: wrote {written} chunk(s)")
        return written

    def index_all(self, products: Iterable[Any]) -> List[IndexReport]:
        """Index many products; one product failing does not stop the batch."""
        reports = []
        for product in products:
            record = normalize_product(product)
            pid = record.id if record else "?"
            try:
                reports.append(IndexReport(product_id=pid, chunks=self.index_product(product)))
            except Exception as e:
                logger.error(f"[INDEX] {pid}: failed: {e}")
                reports.append(IndexReport(product_id=pid, error=str(e)))
        return reports
