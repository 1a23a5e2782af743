"""Back-office CRUD routers (brands, suppliers, products, customers, employees)."""
from typing import Any, Callable, List, Type
from fastapi import APIRouter, Depends, HTTPException, Path, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from auth import require_operator
from config import API_PREFIX
from database import get_db
from dependencies import (
    get_brand_service,
    get_customer_service,
    get_employee_service,
    get_product_service,
    get_supplier_service,
)
from exceptions import RecordConflictError
from schemas import (
    BrandCreate, BrandResponse,
    CustomerCreate, CustomerResponse,
    EmployeeCreate, EmployeeResponse,
    ProductCreate, ProductListItem, ProductResponse,
    SupplierCreate, SupplierResponse,
)


def crud_router(
    resource: str,
    entity_name: str,
    get_service: Callable[[], Any],
    create_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
    list_schema: Type[BaseModel] = None,
) -> APIRouter:
    """
    Build the five standard endpoints for one back-office table.

    Args:
        resource: URL segment, e.g. "brands"
        entity_name: Name used in error messages, e.g. "Brand"
        get_service: Dependency returning the CrudService for the table
        create_schema: Body schema for POST and PUT
        response_schema: Schema for single-record responses
        list_schema: Schema for list rows (defaults to response_schema)
    """
    router = APIRouter(
        prefix=f"{API_PREFIX}/{resource}",
        tags=[resource],
        dependencies=[Depends(require_operator)],
    )
    not_found = f"{entity_name} not found"

    @router.get("", response_model=List[list_schema or response_schema])
    def list_records(
        db: Session = Depends(get_db),
        service=Depends(get_service)
    ):
        return service.list_all(db)

    @router.get("/{record_id}", response_model=response_schema)
    def get_record(
        record_id: int = Path(...),
        db: Session = Depends(get_db),
        service=Depends(get_service)
    ):
        record = service.get(db, record_id)
        if record is None:
            raise HTTPException(status_code=404, detail=not_found)
        return record

    @router.post("", response_model=response_schema, status_code=201)
    def create_record(
        request: create_schema,
        db: Session = Depends(get_db),
        service=Depends(get_service)
    ):
        try:
            return service.create(db, request)
        except RecordConflictError as e:
            raise HTTPException(status_code=409, detail=str(e))

    @router.put("/{record_id}", response_model=response_schema)
    def update_record(
        request: create_schema,
        record_id: int = Path(...),
        db: Session = Depends(get_db),
        service=Depends(get_service)
    ):
        try:
            record = service.update(db, record_id, request)
        except RecordConflictError as e:
            raise HTTPException(status_code=409, detail=str(e))
        if record is None:
            raise HTTPException(status_code=404, detail=not_found)
        return record

    @router.delete("/{record_id}", status_code=204)
    def delete_record(
        record_id: int = Path(...),
        db: Session = Depends(get_db),
        service=Depends(get_service)
    ):
        try:
            service.delete(db, record_id)
        except RecordConflictError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return Response(status_code=204)

    return router


brands_router = crud_router("brands", "Brand", get_brand_service, BrandCreate, BrandResponse)
suppliers_router = crud_router("suppliers", "Supplier", get_supplier_service, SupplierCreate, SupplierResponse)
products_router = crud_router(
    "products", "Product", get_product_service, ProductCreate, ProductResponse,
    list_schema=ProductListItem
)
customers_router = crud_router("customers", "Customer", get_customer_service, CustomerCreate, CustomerResponse)
employees_router = crud_router("employees", "Employee", get_employee_service, EmployeeCreate, EmployeeResponse)
