"""Customer CRUD routes, scoped to the caller's business."""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from models.models import Business, Customer, User
from schemas.catalog import CustomerCreate, CustomerResponse, CustomerUpdate
from services.activity import log_activity
from services.auth import business_scope, get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/customers", tags=["customers"])


def _get_customer(db: Session, customer_id: str, user: User) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    scope = business_scope(user)
    if scope is not None and customer.business_id != scope:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return customer


@router.get("", response_model=list[CustomerResponse])
def list_customers(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    query = db.query(Customer)
    scope = business_scope(user)
    if scope is not None:
        query = query.filter(Customer.business_id == scope)
    return query.order_by(Customer.name).all()


@router.post("", response_model=CustomerResponse, status_code=201)
def create_customer(
    body: CustomerCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = body.model_dump(exclude={"business_id"})
    business_id = user.business_id
    if user.role == "admin":
        if not body.business_id:
            raise HTTPException(status_code=400, detail="business_id is required")
        if db.get(Business, body.business_id) is None:
            raise HTTPException(status_code=400, detail="Business not found")
        business_id = body.business_id

    customer = Customer(business_id=business_id, **data)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    response = CustomerResponse.model_validate(customer)

    log_activity(db, user.id, "customer_created", "customer", customer.id, request)
    return response


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _get_customer(db, customer_id, user)


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: str,
    body: CustomerUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    customer = _get_customer(db, customer_id, user)
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    for field, value in updates.items():
        setattr(customer, field, value)
    db.commit()
    db.refresh(customer)
    response = CustomerResponse.model_validate(customer)

    log_activity(db, user.id, "customer_updated", "customer", customer_id, request)
    return response


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    customer = _get_customer(db, customer_id, user)
    db.delete(customer)
    db.commit()

    log_activity(db, user.id, "customer_deleted", "customer", customer_id, request)
    return {"message": "Customer deleted successfully"}
