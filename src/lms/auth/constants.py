ACCESS_TOKEN_EXPIRE_MINUTES = 7 * 24 * 60  # 7 days
JWT_ALGORITHM = "HS256"
TOKEN_TYPE = "access"
BEARER_PREFIX = "Bearer "
