#!/usr/bin/env python3
"""
Batch indexing script for the shopping assistant.

Seeds the catalog if it is empty, then (re)builds the retrievable chunks of
every product, or of the products given with --product. One product failing
does not stop the batch; a summary is printed at the end.
"""

from typing import List, Optional

from ..app.indexer import ChunkIndexer
from ..data.catalog import CatalogStore
from ..data.populate_db import populate_products
from ..schemas.io_models import IndexReport
from ..utils.logger import get_logger

logger = get_logger()


def ingest(product_ids: Optional[List[str]] = None, indexer: ChunkIndexer = None,
           store: CatalogStore = None, seed: bool = True) -> List[IndexReport]:
    """
    Index products into the chunk store.

    Args:
        product_ids: Only these products (all products when empty)
        indexer: Indexer to use (built from config by default)
        store: Catalog to read products from
        seed: Populate an empty catalog with the sample products first

    Returns:
        One IndexReport per product
    """
    store = store or CatalogStore()
    if seed:
        populate_products(session_factory=store.session_factory)

    if product_ids:
        products = []
        for pid in product_ids:
            product = store.get_product(pid)
            if product is None:
                logger.warning(f"[INGEST] unknown product {pid}, skipped")
                continue
            products.append(product)
    else:
        products = store.all_products()

    indexer = indexer or ChunkIndexer()
    logger.info(f"[INGEST] indexing {len(products)} product(s)")
    reports = indexer.index_all(products)

    ok = [r for r in reports if r.error is None]
    failed = [r for r in reports if r.error is not None]
    logger.info(f"[INGEST] done: {len(ok)} indexed, {sum(r.chunks for r in ok)} chunk(s), {len(failed)} failed")
    return reports


def main():
    """Main function to run the indexing pipeline."""
    import argparse

    parser = argparse.ArgumentParser(description='Index catalog products for retrieval')
    parser.add_argument('--product', '-p', action='append', default=[],
                        help='Product id to index (repeatable; default: all products)')
    parser.add_argument('--no-seed', action='store_true',
                        help='Do not populate an empty catalog with sample products')

    args = parser.parse_args()

    reports = ingest(args.product or None, seed=not args.no_seed)
    for r in reports:
        status = f"{r.chunks} chunk(s)" if r.error is None else f"FAILED: {r.error}"
        print(f"{r.product_id}: {status}")


if __name__ == '__main__':
    main()
