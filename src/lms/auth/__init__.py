from lms.auth.dependencies import get_current_user
from lms.auth.rbac import authorize, require_roles, check_ownership
from lms.auth.models import TokenClaims, TokenResponse

__all__ = [
    "get_current_user",
    "authorize",
    "require_roles",
    "check_ownership",
    "TokenClaims",
    "TokenResponse",
]
