import json
import os
from .database import SessionLocal, create_tables
from .models import Product
from ..utils.logger import get_logger

logger = get_logger()

PRODUCTS_JSON_PATH = os.path.join(os.path.dirname(__file__), "raw", "products.json")


def load_seed_products(path: str = PRODUCTS_JSON_PATH):
    with open(path, mode="r", encoding="utf-8") as f:
        return json.load(f)


def populate_products(session_factory=None, bind=None, path: str = PRODUCTS_JSON_PATH) -> int:
    """Read products.json and populate the products table once.

    Returns the number of products inserted (0 when the table already has rows).
    """
    db = (session_factory or SessionLocal)()
    try:
        # Ensure tables are created
        create_tables(bind=bind or db.get_bind())
        if db.query(Product).count() > 0:
            logger.info("Products table is not empty. Skipping population.")
            return 0

        rows = load_seed_products(path)
        for row in rows:
            db.add(Product(
                name=row["name"],
                description=row.get("description"),
                price=row.get("price"),
                image_url=row.get("image_url"),
                category=row["category"],
                rating=row.get("rating", 0),
                specs=row.get("specs") or {},
            ))
        db.commit()
        logger.info(f"Successfully populated the products table with {len(rows)} products.")
        return len(rows)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    populate_products()
