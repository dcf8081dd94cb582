"""
Request dependencies: caller identity.

Authentication happens upstream. The gateway forwards the authenticated
employee's id and role as X-User-Id / X-User-Role; this service trusts them.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from app.models.user import UserRole


@dataclass
class CurrentUser:
    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    if not x_user_id or not x_user_id.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid X-User-Id header",
        )
    try:
        role = UserRole(x_user_role.lower()) if x_user_role else UserRole.EMPLOYEE
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role: {x_user_role}",
        )
    return CurrentUser(id=int(x_user_id), role=role)


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
