import uuid

from sqlalchemy import Column, String, Float, DateTime, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=True, index=True)
    image_url = Column(String, nullable=True)
    specs = Column(JSON, nullable=True, default=dict)
    category = Column(String, nullable=False, index=True)
    rating = Column(Float, nullable=True, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    docs = relationship("ProductDoc", back_populates="product", cascade="all, delete-orphan")


class ProductDoc(Base):
    """One retrievable chunk of a product's text, with its embedding."""
    __tablename__ = "product_docs"

    id = Column(String(36), primary_key=True, default=_new_id)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    metadata_ = Column("metadata", JSON, nullable=True)
    # Stored as a plain list of floats; similarity is computed in process
    embedding = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    product = relationship("Product", back_populates="docs")
