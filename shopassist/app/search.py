"""Catalog search: synonym-expanded substring matching with category fallback."""
from typing import List

from .config import Config
from ..data.catalog import CatalogStore, get_catalog_store
from ..nlu.query_expander import expand
from ..nlu.rules import infer_category
from ..schemas.io_models import ProductRecord
from ..utils.logger import get_logger

logger = get_logger()


class CatalogSearch:
    """Resolve a free-text query to candidate products.

    An empty result is a valid "no signal" outcome, not a failure.
    """

    def __init__(self, store: CatalogStore = None):
        self.store = store or get_catalog_store()

    def search(self, query: str, limit: int = None) -> List[ProductRecord]:
        limit = limit or Config.SEARCH_LIMIT
        tokens = expand(query)
        if not tokens:
            logger.info("[SEARCH] no usable tokens, skipping catalog lookup")
            return []
        logger.info(f"[SEARCH] expanded tokens: {tokens}")

        try:
            rows = self.store.find_by_tokens(tokens, limit)
        except Exception as e:
            logger.warning(f"[SEARCH] catalog lookup failed: {e}")
            return []
        if rows:
            return rows

        category = infer_category(tokens)
        if not category:
            logger.info("[SEARCH] no matches and no category inferred")
            return []

        logger.info(f"[SEARCH] no direct matches, falling back to category '{category}'")
        try:
            return self.store.top_in_category(category, limit)
        except Exception as e:
            logger.warning(f"[SEARCH] category fallback failed: {e}")
            return []
