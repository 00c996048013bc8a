from typing import Callable, Iterable, Optional

from fastapi import Depends

from lms.auth.dependencies import get_current_user
from lms.auth.models import TokenClaims
from lms.errors import Forbidden, Unauthenticated


def authorize(claims: Optional[TokenClaims], allowed_roles: Iterable[str]) -> TokenClaims:
    """Check the caller's role against the roles a route accepts."""
    if claims is None:
        raise Unauthenticated("Authentication required")

    allowed = list(allowed_roles)
    if claims.role not in allowed:
        raise Forbidden(
            "Access denied. Required role: " + " or ".join(allowed),
            allowed_roles=allowed,
        )

    return claims


def require_roles(*allowed_roles: str) -> Callable:
    """FastAPI dependency factory: the authenticated caller must hold one of
    ``allowed_roles``. Returns the caller's claims.

    Usage:
        @router.post("/")
        async def create_category(
            current_user: TokenClaims = Depends(require_roles("Admin")),
        ):
    """

    async def _check(
        current_user: TokenClaims = Depends(get_current_user),
    ) -> TokenClaims:
        return authorize(current_user, allowed_roles)

    return _check


def is_owner_scoped(claims: TokenClaims, scoped_roles: Iterable[str]) -> bool:
    """Whether the caller may only act on rows they own."""
    return claims.role in scoped_roles


def check_ownership(
    claims: TokenClaims,
    owner_id: Optional[int],
    scoped_roles: Iterable[str],
    message: str = "Access denied",
):
    if is_owner_scoped(claims, scoped_roles) and owner_id != claims.user_id:
        raise Forbidden(message)
