#!/usr/bin/env python3
"""
Main FastAPI application for the shopping assistant.
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict, List, Optional
import uuid

from .config import Config
from .controller import AnswerPipeline, Controller, run_in_executor
from .indexer import ChunkIndexer
from .search import CatalogSearch
from .session import SessionManager
from ..data.catalog import CatalogStore, get_catalog_store
from ..data.database import create_tables
from ..schemas.io_models import (
    AssistantStatus, ContextChunk, IndexReport, MessagesResponse, ProductRecord, ProductsResponse,
    QueryRequest, QueryResponse, RagRequest, RagResponse, SessionActionRequest,
    SessionCreateRequest, SessionCreateResponse,
)
from ..utils.logger import get_logger

logger = get_logger()

RAG_FALLBACK_CHARS = 2000
RAG_FALLBACK_SCORE = 0.5
QUERY_ERROR_DETAIL = "The assistant could not process this query."


class ControllerRegistry:
    """One Controller per session id, sharing the stateless pipeline."""

    def __init__(self, pipeline: AnswerPipeline = None, session_manager: SessionManager = None,
                 catalog: CatalogStore = None):
        self._pipeline = pipeline
        self.session_manager = session_manager or SessionManager()
        self.catalog = catalog or get_catalog_store()
        self.controllers: Dict[str, Controller] = {}

    @property
    def pipeline(self) -> AnswerPipeline:
        if self._pipeline is None:
            self._pipeline = AnswerPipeline(search=CatalogSearch(self.catalog))
        return self._pipeline

    def get(self, session_id: str) -> Controller:
        controller = self.controllers.get(session_id)
        if controller is None:
            controller = Controller(session_id, pipeline=self.pipeline,
                                    session_manager=self.session_manager, catalog=self.catalog)
            self.controllers[session_id] = controller
        return controller

    def find(self, session_id: str) -> Optional[Controller]:
        """Controller for a session that exists; nothing is created."""
        controller = self.controllers.get(session_id)
        if controller is None and self.session_manager.get_session(session_id) is not None:
            controller = self.get(session_id)
        return controller

    def evict(self, session_id: str) -> Optional[Controller]:
        return self.controllers.pop(session_id, None)


_registry: Optional[ControllerRegistry] = None
_indexer: Optional[ChunkIndexer] = None


def get_catalog() -> CatalogStore:
    return get_catalog_store()


def get_registry() -> ControllerRegistry:
    global _registry
    if _registry is None:
        _registry = ControllerRegistry()
    return _registry


def get_indexer() -> ChunkIndexer:
    global _indexer
    if _indexer is None:
        _indexer = ChunkIndexer()
    return _indexer


@asynccontextmanager
async def lifespan(app: FastAPI):
    Config.validate()
    create_tables()
    logger.info("[API] shopping assistant ready")
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Shopping Assistant API",
    description="Retrieval-augmented shopping assistant for a product catalog",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/session", response_model=SessionCreateResponse)
async def create_session(request: SessionCreateRequest, registry: ControllerRegistry = Depends(get_registry)):
    """Create a new assistant session (an id is generated when none is given)."""
    session_id = request.session_id or str(uuid.uuid4())
    created = registry.session_manager.create_session(session_id)
    registry.get(session_id)
    return SessionCreateResponse(session_id=session_id, created=created)


async def _product_or_404(catalog: CatalogStore, product_id: str) -> ProductRecord:
    product = await run_in_executor(catalog.get_product, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
    return product


@app.post("/query", response_model=QueryResponse)
async def query_assistant(request: QueryRequest, registry: ControllerRegistry = Depends(get_registry)):
    """
    Run one text turn for a session.

    product_id, when given, is the product currently on screen and is used
    when the query itself does not point at a product.
    """
    try:
        controller = registry.get(request.session_id)
        fallback = None
        if request.product_id:
            fallback = await _product_or_404(registry.catalog, request.product_id)
        result = await controller.handle_query(request.query, fallback, speak=request.speak)
        return QueryResponse(
            session_id=request.session_id,
            response=result.reply,
            outcome=result.outcome,
            product_id=result.product_id,
            status=controller.status,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[API] query failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=QUERY_ERROR_DETAIL)


def _session_or_404(registry: ControllerRegistry, session_id: str) -> Controller:
    controller = registry.find(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return controller


@app.post("/retry", response_model=QueryResponse)
async def retry_last(request: SessionActionRequest, registry: ControllerRegistry = Depends(get_registry)):
    controller = _session_or_404(registry, request.session_id)
    result = await controller.retry_last()
    return QueryResponse(session_id=request.session_id, response=result.reply, outcome=result.outcome,
                         product_id=result.product_id, status=controller.status)


@app.post("/stop")
async def stop(request: SessionActionRequest, registry: ControllerRegistry = Depends(get_registry)):
    controller = registry.controllers.get(request.session_id)
    if controller is not None:
        controller.stop()
    return {"session_id": request.session_id, "status": AssistantStatus.idle.value}


@app.post("/reset")
async def reset(request: SessionActionRequest, registry: ControllerRegistry = Depends(get_registry)):
    """Stop the session, forget its history and drop its controller."""
    controller = registry.evict(request.session_id)
    if controller is not None:
        controller.reset()
    elif registry.session_manager.clear_session(request.session_id):
        registry.session_manager.create_session(request.session_id)
    return {"session_id": request.session_id, "status": AssistantStatus.idle.value}


@app.get("/session/{session_id}/messages", response_model=MessagesResponse)
async def get_messages(session_id: str, registry: ControllerRegistry = Depends(get_registry)):
    controller = _session_or_404(registry, session_id)
    return MessagesResponse(session_id=session_id, messages=controller.get_messages(), status=controller.status)


@app.get("/products", response_model=ProductsResponse)
async def list_products(
    q: Optional[str] = None,
    category: Optional[str] = None,
    price_min: Optional[float] = None,
    price_max: Optional[float] = None,
    limit: int = Query(Config.PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    catalog: CatalogStore = Depends(get_catalog),
):
    """Newest-first catalog page; one extra row is fetched to know if more exist."""
    rows = await run_in_executor(catalog.list_products, q, category, price_min, price_max, limit + 1, offset)
    return ProductsResponse(products=rows[:limit], limit=limit, offset=offset, has_more=len(rows) > limit)


@app.get("/products/search", response_model=List[ProductRecord])
async def search_products(q: str, catalog: CatalogStore = Depends(get_catalog)):
    return await run_in_executor(CatalogSearch(catalog).search, q)


@app.get("/products/{product_id}", response_model=ProductRecord)
async def get_product(product_id: str, catalog: CatalogStore = Depends(get_catalog)):
    return await _product_or_404(catalog, product_id)


@app.get("/products/{product_id}/similar", response_model=List[ProductRecord])
async def similar_products(product_id: str, limit: int = Query(6, ge=1, le=24),
                           catalog: CatalogStore = Depends(get_catalog)):
    product = await _product_or_404(catalog, product_id)
    return await run_in_executor(catalog.get_similar_by_category, product.category, product.id, limit)


@app.get("/categories", response_model=List[str])
async def categories(catalog: CatalogStore = Depends(get_catalog)):
    return await run_in_executor(catalog.get_categories)


def _synthesized_chunk(product: ProductRecord) -> ContextChunk:
    parts = [product.description or ""]
    if product.specs:
        parts.append(", ".join(f"{k}: {v}" for k, v in product.specs.items()))
    if product.category:
        parts.append(f"Category: {product.category}")
    content = "\n".join(p for p in parts if p)[:RAG_FALLBACK_CHARS]
    return ContextChunk(content=content, score=RAG_FALLBACK_SCORE)


@app.post("/rag", response_model=RagResponse)
async def rag_context(request: RagRequest, registry: ControllerRegistry = Depends(get_registry)):
    """Product facts plus grounding chunks for one product."""
    if not request.product_id:
        raise HTTPException(status_code=400, detail="Missing product_id")
    product = await _product_or_404(registry.catalog, request.product_id)

    chunks = []
    retriever = registry.pipeline.retriever
    if retriever is not None and request.user_query:
        found = await run_in_executor(retriever.retrieve, request.user_query, product.id)
        chunks = [ContextChunk(content=c.text, score=c.similarity) for c in found]
    if not chunks:
        chunks = [_synthesized_chunk(product)]
    return RagResponse(product_info=product, context_chunks=chunks)


@app.post("/index/{product_id}", response_model=IndexReport)
async def index_product(product_id: str, catalog: CatalogStore = Depends(get_catalog),
                        indexer: ChunkIndexer = Depends(get_indexer)):
    product = await _product_or_404(catalog, product_id)
    try:
        chunks = await run_in_executor(indexer.index_product, product)
    except Exception as e:
        logger.error(f"[API] indexing {product_id} failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error indexing product: {str(e)}")
    return IndexReport(product_id=product.id, chunks=chunks)


@app.post("/index", response_model=List[IndexReport])
async def index_all(catalog: CatalogStore = Depends(get_catalog), indexer: ChunkIndexer = Depends(get_indexer)):
    products = await run_in_executor(catalog.all_products)
    return await run_in_executor(indexer.index_all, products)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
