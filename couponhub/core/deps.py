from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from couponhub.core.db import get_db
from couponhub.core.security import TokenError, decode_token
from couponhub.stores import Stores, sql_stores

bearer_scheme = HTTPBearer(auto_error=False)

ROLES = ("Admin", "Restaurant", "Customer")


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Unauthorized access: No token provided.")

    try:
        payload = decode_token(credentials.credentials)
    except TokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user_id = payload.get("sub") or payload.get("user_id") or payload.get("id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token missing user id (sub/user_id)")

    role = payload.get("role")
    if role not in ROLES:
        raise HTTPException(status_code=401, detail="Token missing or unknown role")

    return CurrentUser(id=str(user_id), role=role)


def require_role(*roles: str):
    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden: Insufficient privileges")
        return current_user

    return dependency


require_restaurant = require_role("Restaurant")
require_customer = require_role("Customer")


async def get_stores(db: AsyncSession = Depends(get_db)) -> Stores:
    return sql_stores(db)
