"""Shared test doubles: an in-memory catalog database and fake external clients."""
from datetime import datetime, timedelta

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shopassist.data.database import create_tables
from shopassist.data.models import Product

HEADPHONES = {
    "id": "p-headphones",
    "name": "Wireless Noise-Cancelling Headphones",
    "description": "Premium over-ear headphones with active noise cancellation, 30-hour battery life, "
                   "and studio-quality sound.",
    "price": 299.99,
    "category": "Electronics",
    "rating": 4.8,
    "specs": {"color": "black", "battery": "30 hours", "connectivity": "Bluetooth 5.0", "weight": "250g"},
}

WATCH = {
    "id": "p-watch",
    "name": "Smart Fitness Watch",
    "description": "Advanced fitness tracker with heart rate monitoring, GPS, sleep tracking, "
                   "and 7-day battery life.",
    "price": 249.99,
    "category": "Electronics",
    "rating": 4.6,
    "specs": {"display": "1.4 inch AMOLED", "waterproof": "5ATM", "battery": "7 days"},
}

CHAIR = {
    "id": "p-chair",
    "name": "Ergonomic Office Chair",
    "description": "Premium mesh office chair with lumbar support, adjustable armrests, and tilt mechanism.",
    "price": 399.99,
    "category": "Furniture",
    "rating": 4.7,
    "specs": {"material": "Mesh & Aluminum", "warranty": "5 years"},
}

BOTTLE = {
    "id": "p-bottle",
    "name": "Stainless Steel Water Bottle",
    "description": "Insulated 32oz water bottle that keeps drinks cold for 24 hours. BPA-free and leak-proof.",
    "price": 34.99,
    "category": "Home & Kitchen",
    "rating": 4.9,
    "specs": {"capacity": "32oz (946ml)"},
}

CATALOG = [HEADPHONES, WATCH, CHAIR, BOTTLE]


def make_session_factory():
    """Fresh in-memory SQLite database with the schema created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def seed(session_factory, products=CATALOG):
    """Insert products; later entries get later created_at values."""
    db = session_factory()
    try:
        start = datetime(2025, 1, 1)
        for i, p in enumerate(products):
            db.add(Product(created_at=start + timedelta(minutes=i), **p))
        db.commit()
    finally:
        db.close()


class FakeEmbedder:
    """Deterministic embeddings: one dimension per keyword, plus a bias term."""

    KEYWORDS = ["battery", "noise", "sound", "chair", "lumbar", "water", "gps", "bluetooth"]

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def embed(self, text, mode="document"):
        self.calls.append((text, mode))
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError("embedding service down")
        lowered = text.lower()
        return [float(lowered.count(k)) for k in self.KEYWORDS] + [0.1]


class FakeCompletion:
    """Replays scripted results; exceptions in the script are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        result = self.results.pop(0) if self.results else ""
        if isinstance(result, Exception):
            raise result
        return result
