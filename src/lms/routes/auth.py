from typing import Dict, Optional

from fastapi import APIRouter, Depends, Header

from lms.auth.dependencies import extract_bearer_token
from lms.auth.jwt import create_access_token, decode_access_token
from lms.auth.passwords import hash_password, verify_password
from lms.config import DEFAULT_ROLE, MIN_PASSWORD_LENGTH, ROLES
from lms.db.user import get_user_by_login, insert_user, user_exists_with
from lms.errors import Conflict, MissingField, Unauthenticated, ValidationFailed
from lms.models import AuthResponse, LoginRequest, RegisterRequest, VerifyResponse
from lms.utils.db import DatabasePool, get_db_pool
from lms.utils.logging import logger

router = APIRouter()


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest, pool: DatabasePool = Depends(get_db_pool)
) -> Dict:
    """Authenticate by username (or email) and password."""
    if not request.username or not request.password:
        raise MissingField(["Username", "password"])

    logger.info(f"Login attempt for: {request.username}")

    user = await get_user_by_login(pool, request.username)
    if not user or not verify_password(request.password, user["password"]):
        raise Unauthenticated("Invalid username or password")

    user.pop("password")
    token = create_access_token(user["id"], user["role"])

    return {"user": user, "token": token.access_token}


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    request: RegisterRequest, pool: DatabasePool = Depends(get_db_pool)
) -> Dict:
    """Create a user account and sign it in."""
    if not all([request.username, request.email, request.password, request.name]):
        raise ValidationFailed("All fields are required")

    if len(request.password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )

    role = request.role or DEFAULT_ROLE
    if role not in ROLES:
        raise ValidationFailed(f"Invalid role. Must be one of: {', '.join(ROLES)}")

    if await user_exists_with(pool, request.username, request.email):
        raise Conflict("Username or email already exists")

    user = await insert_user(
        pool,
        request.username,
        request.email,
        hash_password(request.password),
        request.name,
        role,
    )
    logger.info(f"User registered: id={user['id']} role={role}")

    token = create_access_token(user["id"], user["role"])

    return {"user": user, "token": token.access_token}


@router.get("/verify", response_model=VerifyResponse)
async def verify(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Dict:
    token = extract_bearer_token(authorization)
    claims = decode_access_token(token)
    return {"valid": True, "userId": claims.user_id, "role": claims.role}
