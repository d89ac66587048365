#!/usr/bin/env python3
"""
Retrieval module for the shopping assistant.

Embeds the user query in query mode and pulls the nearest product chunks from
the chunk store. Retrieval never raises: any failure degrades to "no grounding
context" and the answer flow carries on without it.
"""

from typing import List, Optional
from .config import Config
from .embed import QUERY, EmbeddingClient
from ..data.chunk_store import ChunkStore
from ..schemas.io_models import RetrievedChunk
from ..utils.logger import get_logger

logger = get_logger()


class ContextRetriever:
    """Nearest-chunk retriever with a similarity floor."""

    def __init__(self, embed_client: EmbeddingClient = None, store: ChunkStore = None,
                 similarity_floor: float = None):
        self.embed_client = embed_client or EmbeddingClient()
        self.store = store or ChunkStore()
        self.similarity_floor = Config.SIMILARITY_FLOOR if similarity_floor is None else similarity_floor

    def retrieve(self, query: str, product_id: Optional[str] = None, top_k: int = None) -> List[RetrievedChunk]:
        """
        Fetch grounding chunks for a query.

        Args:
            query: User query text
            product_id: Restrict the lookup to one product's chunks
            top_k: Maximum number of candidates to request

        Returns:
            Chunks ordered by descending similarity, all at or above the floor
        """
        top_k = top_k or Config.RETRIEVAL_TOP_K
        if not query or not query.strip():
            return []

        try:
            query_embedding = self.embed_client.embed(query.strip(), QUERY)
            matches = self.store.match(query_embedding, top_k, product_id=product_id)
        except Exception as e:
            logger.warning(f"[RETRIEVAL] degraded to no context: {e}")
            return []

        results = []
        for m in matches:
            similarity = float(m.get("similarity", 0.0))
            if similarity < self.similarity_floor:
                continue
            results.append(RetrievedChunk(text=m["content"], similarity=min(similarity, 1.0)))
        results.sort(key=lambda c: c.similarity, reverse=True)
        logger.info(f"[RETRIEVAL] {len(results)}/{len(matches)} chunk(s) above floor {self.similarity_floor}")
        return results
