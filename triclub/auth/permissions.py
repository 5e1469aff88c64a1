"""
Club role checks for FastAPI endpoints.

Roles are ordered pending < member < coach < exec < administrator. Endpoints
list the roles they accept, usually MEMBER_ROLES or STAFF_ROLES.
"""

from typing import List, Optional

from fastapi import Depends, HTTPException, status

from triclub.auth.jwt_handler import verify_jwt_token
from triclub.models.user import UserRole


def _describe_roles(roles: List[str]) -> str:
    return ", ".join(roles)


def get_current_user(allowed_roles: Optional[List[str]] = None):
    """
    Builds a dependency returning the token's user ({"email", "role", "id"})
    once their club role is one of `allowed_roles` (any role when None).

    Pending members get their own message: their account exists but an exec
    has not approved their membership yet.
    """
    def dependency(token_user: dict = Depends(verify_jwt_token)):
        if not token_user or token_user.get("id") is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required"
            )

        role = token_user.get("role")
        if role not in [r.value for r in UserRole]:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token carries no valid club role"
            )

        if allowed_roles is None or role in allowed_roles:
            return token_user

        if role == UserRole.PENDING.value:
            detail = "Your club membership is pending approval"
        else:
            detail = f"Only club roles {_describe_roles(allowed_roles)} can do this (you are {role})"
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

    return dependency
