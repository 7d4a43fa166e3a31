"""
inkwell.api.auth — JWT issuance + current-user endpoint
========================================================

Sign-in itself belongs to the account collaborator; once it has verified a
user it calls :func:`issue_token` and hands the bearer token to the client.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
from fastapi import APIRouter, Depends

from inkwell.api.deps import JWT_ALGORITHM, JWT_SECRET, get_current_user
from inkwell.database.models import User

router = APIRouter(prefix="/auth", tags=["auth"])

TOKEN_TTL = timedelta(hours=12)


def issue_token(user_id: int, *, ttl: timedelta = TOKEN_TTL) -> str:
    """Sign a bearer token whose ``sub`` is *user_id*."""
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(UTC) + ttl,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    """Return the authenticated user's economy profile."""
    return {
        "id": str(user.id),
        "username": user.username,
        "isPro": bool(user.is_pro),
        "points": user.points,
        "level": user.level,
        "inkDrops": user.ink_drops,
    }
