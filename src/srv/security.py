import jwt
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext
from pydantic import SecretStr, ValidationError
from core.config import Settings
from core.logging import get_logger
from srv.schemas import SessionUser, UserPublic, UserRole

logger = get_logger(__name__)

# import the JWT config variables
settings = Settings()

# setup password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# setup OAuth2 scheme; points to the login route. pages send the token as a cookie instead of a
# header, so a missing header must not be an error here
oauth2 = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def verify_pwd(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_hashed_pwd(plain: str) -> str:
    return pwd_context.hash(plain)


def _secret_key() -> str:
    # if the JWT_SECRET_KEY was imported from the .env file, then it's a SecretStr
    # otherwise, it might be an automatically generated value (see core/config.py)
    key = settings.jwt_secret_key
    if isinstance(key, SecretStr):
        return key.get_secret_value()
    if isinstance(key, str):
        return key
    raise TypeError("Expected a string (or SecretStr) value")


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None
) -> str:
    payload = data.copy()
    # if the caller gave us an expiration date, use it. otherwise, use the configured default
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    payload.update({"exp": expire})
    return jwt.encode(payload, _secret_key(), algorithm=settings.jwt_algorithm)


def create_session_token(user: UserPublic, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issues the session token for a stored user. The claims are everything `SessionUser` needs.
    """
    return create_access_token(
        {
            "sub": str(user.id),
            "name": user.full_name,
            "email": user.email,
            "role": UserRole(user.role).value,
        },
        expires_delta=expires_delta
    )


def decode_session_token(token: str) -> Optional[dict[str, Any]]:
    """
    Returns the token's claims, or `None` if the token is invalid or expired.
    """
    try:
        return jwt.decode(token, _secret_key(), algorithms=[settings.jwt_algorithm])
    except InvalidTokenError:
        return None


def session_from_claims(claims: dict[str, Any]) -> Optional[SessionUser]:
    try:
        return SessionUser(
            id=claims.get("sub"),
            name=claims.get("name") or "",
            email=claims.get("email") or "",
            role=claims.get("role") or "",
        )
    except ValidationError:
        return None


# dependency for retrieving the raw session token: the bearer header wins over the cookie
def get_session_token(
    request: Request,
    bearer: Annotated[Optional[str], Depends(oauth2)]
) -> Optional[str]:
    return bearer or request.cookies.get(settings.session_cookie_name)


# dependency for retrieving the session (if there is one)
def get_optional_session(
    request: Request,
    token: Annotated[Optional[str], Depends(get_session_token)]
) -> Optional[SessionUser]:
    if not token:
        return None
    claims = decode_session_token(token)
    if claims is None:
        logger.info("session_token_rejected", path=request.url.path)
        return None
    return session_from_claims(claims)


# dependency for routes that need an authenticated user
def get_current_session(
    session_user: Annotated[Optional[SessionUser], Depends(get_optional_session)]
) -> SessionUser:
    if session_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session_user


def require_roles(*roles: str):
    """
    Builds a dependency that only lets sessions with one of `roles` through (403 otherwise).
    """
    allowed = frozenset(UserRole(r).value if isinstance(r, UserRole) else r for r in roles)

    def _dependency(
        session_user: Annotated[SessionUser, Depends(get_current_session)]
    ) -> SessionUser:
        if session_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: Insufficient permissions",
            )
        return session_user

    return _dependency
