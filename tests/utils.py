"""Shared helpers for API tests."""

from __future__ import annotations

from typing import Dict

from jose import jwt

from app.core.config import settings
from app.models import User


def make_token(email: str) -> str:
    return jwt.encode({"sub": email}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user.email)}"}
