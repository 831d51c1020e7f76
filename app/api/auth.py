# app/api/auth.py

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from app.api.deps import CurrentAdmin, DbEngine
from app.db.schema import admins
from app.models.auth import AdminOut, LoginIn, TokenOut
from app.security import create_access_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/ping")
def ping():
    return {"ok": True, "route": "/api/auth/ping"}


@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, engine: DbEngine) -> TokenOut:
    """
    Exchange the staff username/password for a bearer token.
    """
    with engine.connect() as conn:
        row = conn.execute(
            select(admins.c.id, admins.c.password_hash)
            .where(admins.c.username == body.username)
        ).first()

    # Same response for unknown user and wrong password
    if row is None or not verify_password(body.password, row.password_hash):
        logger.warning("Failed login for %r", body.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token = create_access_token({"sub": str(row.id)})
    return TokenOut(token=token)


@router.get("/me", response_model=AdminOut)
def me(admin: CurrentAdmin) -> AdminOut:
    return AdminOut(id=admin.id, username=admin.username)
