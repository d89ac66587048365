"""Pydantic models for API I/O and the contracts between pipeline stages.

ProductRecord is the one canonical product shape the core works with; every
wire or ORM shape is normalized into it at the boundary (see utils/normalize.py).
"""
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional


class ProductRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str = ""
    description: Optional[str] = None
    # None means "unknown": missing, unparseable or non-finite upstream
    price: Optional[float] = None
    category: str = ""
    rating: Optional[float] = None
    image_url: Optional[str] = None
    specs: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class RetrievedChunk(BaseModel):
    text: str
    similarity: float = Field(ge=0.0, le=1.0)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class AssistantStatus(str, Enum):
    idle = "idle"
    listening = "listening"
    thinking = "thinking"
    speaking = "speaking"
    error = "error"


class TurnResult(BaseModel):
    """Outcome of one user turn, for logging and the HTTP layer."""
    reply: str
    # answered | clarify | suggestions | fallback | apology | empty_input | busy | cancelled
    outcome: str
    product_id: Optional[str] = None
    candidates: List[str] = Field(default_factory=list)
    context_count: int = 0


class IndexReport(BaseModel):
    product_id: str
    chunks: int = 0
    error: Optional[str] = None


class QueryRequest(BaseModel):
    session_id: str
    query: str
    product_id: Optional[str] = None
    speak: bool = False


class QueryResponse(BaseModel):
    session_id: str
    response: str
    outcome: str
    product_id: Optional[str] = None
    status: AssistantStatus = AssistantStatus.idle


class SessionCreateRequest(BaseModel):
    session_id: Optional[str] = None


class SessionCreateResponse(BaseModel):
    session_id: str
    created: bool


class ProductsResponse(BaseModel):
    products: List[ProductRecord]
    limit: int
    offset: int
    has_more: bool


class SessionActionRequest(BaseModel):
    session_id: str


class MessagesResponse(BaseModel):
    session_id: str
    messages: List[ChatMessage]
    status: AssistantStatus


class RagRequest(BaseModel):
    product_id: Optional[str] = None
    user_query: Optional[str] = None


class ContextChunk(BaseModel):
    content: str
    score: float


class RagResponse(BaseModel):
    product_info: ProductRecord
    context_chunks: List[ContextChunk]
