"""Bearer token verification and role-based access helpers."""

import logging
from datetime import datetime, timedelta

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.models import Job, User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Sign a token for a user id."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode(
        {"userId": user_id, "exp": expire},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the calling user from the Authorization header.

    The user row is re-read on every request so deactivated accounts lose
    access immediately.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Access token required")

    try:
        payload = jwt.decode(
            credentials.credentials, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(status_code=403, detail="Invalid token")

    user = db.get(User, payload.get("userId")) if payload.get("userId") else None
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid or inactive user")
    return user


def require_role(*roles: str):
    """Dependency factory restricting an endpoint to the given roles."""

    def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return checker


def can_access_job(user: User, job: Job) -> bool:
    return (
        user.role == "admin"
        or (user.business_id is not None and user.business_id == job.business_id)
        or user.id == job.employee_id
    )


def can_manage_job(user: User, job: Job) -> bool:
    """Deleting and assigning is left to admins and the owning business."""
    if user.role == "admin":
        return True
    return user.role == "business" and user.business_id == job.business_id


def scope_jobs_query(query, user: User):
    """Admins see every job, businesses their own, employees their business's or assigned ones."""
    if user.role == "admin":
        return query
    if user.role == "business":
        return query.filter(Job.business_id == user.business_id)
    return query.filter(or_(Job.business_id == user.business_id, Job.employee_id == user.id))


def business_scope(user: User) -> str | None:
    """Business id to filter tenant data by; None means unrestricted."""
    return None if user.role == "admin" else user.business_id
