# app/api/deps.py
"""
FastAPI dependencies: the database engine and the per-request admin context.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.engine import Engine

from app.db.engine import get_engine
from app.db.schema import admins
from app.security import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AdminContext:
    """The authenticated staff member handling this request."""

    id: int
    username: str


def get_current_admin(
    engine: Annotated[Engine, Depends(get_engine)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)] = None,
) -> AdminContext:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
        admin_id = int(payload.get("sub"))
    except JWTError:
        logger.warning("JWT validation failed")
        raise credentials_exception
    except (TypeError, ValueError):
        logger.warning("Invalid token subject")
        raise credentials_exception

    with engine.connect() as conn:
        row = conn.execute(
            select(admins.c.id, admins.c.username).where(admins.c.id == admin_id)
        ).first()

    if row is None:
        raise credentials_exception

    return AdminContext(id=row.id, username=row.username)


# Type aliases for dependency injection
DbEngine = Annotated[Engine, Depends(get_engine)]
CurrentAdmin = Annotated[AdminContext, Depends(get_current_admin)]
