"""Database connection and session management."""
from decimal import Decimal
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Any, Dict, Generator
import logging

from config import DATABASE_URL
from models import Base, Brand, Product

logger = logging.getLogger(__name__)

# Brands carried over from the shop's original catalogue
SEED_BRANDS = [
    {"name": "JBL", "discounts": Decimal("5.00")},
    {"name": "HP", "discounts": Decimal("2.50")},
    {"name": "Lenovo"},
    {"name": "Apple"},
    {"name": "Samsung"},
    {"name": "Sony"},
]

SEED_PRODUCTS = [
    {"name": "JBL Flip 6 Speaker", "price": Decimal("129.99"), "stock": 40, "brand": "JBL"},
    {"name": "HP Pavilion 15 Laptop", "price": Decimal("749.00"), "stock": 12, "brand": "HP"},
    {"name": "Lenovo ThinkPad E14", "price": Decimal("899.00"), "stock": 8, "brand": "Lenovo"},
    {"name": "Apple AirPods Pro", "price": Decimal("249.00"), "stock": 25, "brand": "Apple"},
    {"name": "Samsung Galaxy A55", "price": Decimal("449.99"), "stock": 30, "brand": "Samsung"},
    {"name": "Sony WH-1000XM5", "price": Decimal("399.99"), "stock": 15, "brand": "Sony"},
]


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool settings for the configured backend."""
    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_timeout": 30,  # Wait max 30 seconds for a connection
    }


def build_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine with pool settings suited to the backend."""
    new_engine = create_engine(url, **_engine_options(url))

    if new_engine.dialect.name == "sqlite":
        # SQLite leaves foreign keys unchecked unless asked per connection
        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    One session per request; services receive it explicitly.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def seed_db(db: Session) -> None:
    """Insert the default brands and demo products when missing."""
    existing = {name for (name,) in db.query(Brand.name).all()}
    new_brands = [Brand(**data) for data in SEED_BRANDS if data["name"] not in existing]
    if new_brands:
        db.add_all(new_brands)
        db.flush()
        logger.info("Seeded brands", extra={"count": len(new_brands)})

    if db.query(Product).count() == 0:
        brand_ids = {brand.name: brand.id for brand in db.query(Brand).all()}
        db.add_all([
            Product(
                name=data["name"],
                price=data["price"],
                stock=data["stock"],
                brand_id=brand_ids.get(data["brand"]),
            )
            for data in SEED_PRODUCTS
        ])
        logger.info("Seeded database with sample products", extra={"count": len(SEED_PRODUCTS)})

    db.commit()


def init_db(seed: bool = True) -> None:
    """Initialize database tables and seed data."""
    Base.metadata.create_all(bind=engine)

    if not seed:
        return

    db = SessionLocal()
    try:
        seed_db(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
