"""Product catalog routes."""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from models.models import Product, User
from schemas.catalog import ProductCreate, ProductResponse, ProductUpdate
from services.activity import log_activity
from services.auth import business_scope, get_current_user, require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/products", tags=["products"])


def _get_product(db: Session, product_id: str, user: User) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    scope = business_scope(user)
    if scope is not None and product.business_id not in (None, scope):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return product


@router.get("", response_model=list[ProductResponse])
def list_products(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Business products plus shared (business-less) catalog entries."""
    query = db.query(Product)
    scope = business_scope(user)
    if scope is not None:
        query = query.filter((Product.business_id == scope) | (Product.business_id.is_(None)))
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.name).all()


@router.post("", response_model=ProductResponse, status_code=201)
def create_product(
    body: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("admin", "business")),
):
    product = Product(business_id=user.business_id, **body.model_dump())
    db.add(product)
    db.commit()
    db.refresh(product)
    response = ProductResponse.model_validate(product)

    log_activity(db, user.id, "product_created", "product", product.id, request)
    return response


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _get_product(db, product_id, user)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    body: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("admin", "business")),
):
    product = _get_product(db, product_id, user)
    if user.role != "admin" and product.business_id != user.business_id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    for field, value in updates.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    response = ProductResponse.model_validate(product)

    log_activity(db, user.id, "product_updated", "product", product_id, request)
    return response


@router.delete("/{product_id}")
def delete_product(
    product_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("admin", "business")),
):
    product = _get_product(db, product_id, user)
    if user.role != "admin" and product.business_id != user.business_id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    db.delete(product)
    db.commit()

    log_activity(db, user.id, "product_deleted", "product", product_id, request)
    return {"message": "Product deleted successfully"}
