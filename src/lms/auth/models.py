from pydantic import BaseModel


class TokenClaims(BaseModel):
    """Identity and role decoded from a verified bearer token."""

    user_id: int
    role: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
