from typing import Optional

from fastapi import Header

from lms.auth.constants import BEARER_PREFIX
from lms.auth.jwt import decode_access_token
from lms.auth.models import TokenClaims
from lms.errors import Unauthenticated


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated("No token provided")

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthenticated("No token provided")
    return token


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> TokenClaims:
    """Strict JWT-only authentication dependency.

    Extracts the Bearer token from the Authorization header and returns the
    decoded claims. Nothing is looked up in the store; every request is
    verified on its own.
    """
    token = extract_bearer_token(authorization)
    return decode_access_token(token)
