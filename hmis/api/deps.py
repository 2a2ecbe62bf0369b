from __future__ import annotations

from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from hmis.core.config import settings
from hmis.db.session import SessionLocal
from hmis.models.user import User


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# CALLER IDENTITY
# Tokens are issued by the auth service; here they are only read.
# =========================================================
def _bearer_token(authorization: Optional[str]) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return token.strip()


def token_user_id(authorization: Optional[str] = Header(None)) -> int:
    try:
        claims = jwt.decode(_bearer_token(authorization), settings.JWT_SECRET,
                            algorithms=[settings.JWT_ALG])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        return int(claims.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token subject")


def current_user(
    user_id: int = Depends(token_user_id),
    db: Session = Depends(get_db),
) -> User:
    """The acting staff member; stamped as created_by / performed_by."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User inactive")
    return user
