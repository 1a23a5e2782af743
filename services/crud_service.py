"""Back-office record management (brands, suppliers, products, customers, employees)."""
import logging
from typing import Any, Dict, List, Optional, Type
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from opentelemetry import trace

from exceptions import RecordConflictError
from models import Base, Brand, Product
from monitoring import catalog_changes_counter

logger = logging.getLogger(__name__)


class CrudService:
    """Generic create/read/update/delete over one table."""

    def __init__(self, model: Type[Base], entity_name: str):
        """
        Initialize CRUD service.

        Args:
            model: ORM model class
            entity_name: Human readable name used in messages ("Brand")
        """
        self.model = model
        self.entity_name = entity_name
        self.table = model.__tablename__
        self.tracer = trace.get_tracer(__name__)

    def list_all(self, db: Session) -> List[Any]:
        with self.tracer.start_as_current_span(f"db.query.list_{self.table}") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", self.table)

            records = db.query(self.model).order_by(self.model.id).all()

            db_span.set_attribute("db.rows_returned", len(records))
            return records

    def get(self, db: Session, record_id: int) -> Optional[Any]:
        with self.tracer.start_as_current_span(f"db.query.get_{self.table}") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", self.table)
            db_span.set_attribute("record.id", record_id)

            record = db.query(self.model).filter(self.model.id == record_id).first()

            db_span.set_attribute("db.rows_returned", 1 if record else 0)
            return record

    def create(self, db: Session, data: BaseModel) -> Any:
        """
        Insert a new record.

        Args:
            db: Database session
            data: Validated create schema

        Returns:
            The persisted record

        Raises:
            RecordConflictError: If a unique or foreign key constraint fails
        """
        with self.tracer.start_as_current_span(f"db.query.insert_{self.table}") as db_span:
            db_span.set_attribute("db.operation", "INSERT")
            db_span.set_attribute("db.table", self.table)

            record = self.model(**data.model_dump())
            db.add(record)
            self._commit(db, "create")
            db.refresh(record)

            db_span.set_attribute("record.id", record.id)

        logger.info(f"Created {self.entity_name.lower()}", extra={"record_id": record.id})
        return record

    def update(self, db: Session, record_id: int, data: BaseModel) -> Optional[Any]:
        """
        Replace every writable field of a record.

        Returns:
            The updated record, or None if it does not exist

        Raises:
            RecordConflictError: If a unique or foreign key constraint fails
        """
        record = self.get(db, record_id)
        if record is None:
            return None

        with self.tracer.start_as_current_span(f"db.query.update_{self.table}") as db_span:
            db_span.set_attribute("db.operation", "UPDATE")
            db_span.set_attribute("db.table", self.table)
            db_span.set_attribute("record.id", record_id)

            for field, value in data.model_dump().items():
                setattr(record, field, value)
            self._commit(db, "update")
            db.refresh(record)

        logger.info(f"Updated {self.entity_name.lower()}", extra={"record_id": record_id})
        return record

    def delete(self, db: Session, record_id: int) -> bool:
        """
        Delete a record if present.

        Returns:
            True if a row was removed

        Raises:
            RecordConflictError: If other rows still reference it
        """
        record = self.get(db, record_id)
        if record is None:
            return False

        with self.tracer.start_as_current_span(f"db.query.delete_{self.table}") as db_span:
            db_span.set_attribute("db.operation", "DELETE")
            db_span.set_attribute("db.table", self.table)
            db_span.set_attribute("record.id", record_id)

            db.delete(record)
            self._commit(db, "delete")

        logger.info(f"Deleted {self.entity_name.lower()}", extra={"record_id": record_id})
        return True

    def _commit(self, db: Session, operation: str) -> None:
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"{self.entity_name} {operation} violated a constraint", extra={
                "table": self.table,
                "error": str(e.orig)
            })
            raise RecordConflictError(self.entity_name) from e

        catalog_changes_counter.add(1, {"table": self.table, "operation": operation})


class ProductService(CrudService):
    """Products, listed together with their brand name."""

    def __init__(self):
        super().__init__(Product, "Product")

    def list_all(self, db: Session) -> List[Dict[str, Any]]:
        with self.tracer.start_as_current_span("db.query.list_products") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")

            rows = (
                db.query(Product, Brand.name)
                .outerjoin(Brand, Product.brand_id == Brand.id)
                .order_by(Product.id)
                .all()
            )

            db_span.set_attribute("db.rows_returned", len(rows))

        return [
            {
                "id": product.id,
                "name": product.name,
                "price": product.price,
                "stock": product.stock,
                "brand_id": product.brand_id,
                "brand_name": brand_name,
            }
            for product, brand_name in rows
        ]
