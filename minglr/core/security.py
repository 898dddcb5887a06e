from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from minglr.core.config import settings
from minglr.core.errors import NotAuthenticated
from minglr.schemas.user import Identity

security = HTTPBearer()

def create_access_token(user_id: str, email: Optional[str] = None, name: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create an access token shaped like the ones Supabase auth issues

    Args:
        user_id (str): The account id, stored in the ``sub`` claim.
        email (Optional[str]): The account email.
        name (Optional[str]): Display name, stored in the user metadata.
        expires_delta (Optional[timedelta]): The expiration time for the token. Defaults to 15 minutes if not provided.

    Returns:
        str: The encoded JWT token.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode = {
        "sub": user_id,
        "aud": settings.jwt_audience,
        "exp": expire,
        "email": email,
        "user_metadata": {"full_name": name} if name else {}
    }
    return jwt.encode(to_encode, settings.supabase_jwt_secret, algorithm=settings.jwt_algorithm)

def verify_access_token(token: str) -> Identity:
    """
    Verify an access token and read the account out of it

    Args:
        token (str): The bearer token.

    Returns:
        Identity: The account the token was issued for.
    """
    try:
        claims = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience
        )
    except JWTError as e:
        raise NotAuthenticated("Could not validate credentials") from e

    user_id = claims.get("sub")
    if not user_id:
        raise NotAuthenticated("Could not validate credentials")

    metadata = claims.get("user_metadata") or {}
    return Identity(
        id=user_id,
        email=claims.get("email"),
        display_name=metadata.get("full_name") or metadata.get("name"),
        photo_url=metadata.get("avatar_url") or metadata.get("picture")
    )

async def get_current_identity(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Identity:
    """
    Get current authenticated account

    Args:
        credentials (HTTPAuthorizationCredentials): The HTTP authorization credentials containing the Bearer token.

    Returns:
        Identity: The account extracted from the token.
    """
    try:
        return verify_access_token(credentials.credentials)
    except NotAuthenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
