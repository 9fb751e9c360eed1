from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from smartstock.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(user_id: int, username: str, role: str) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "username": username,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iss": settings.issuer,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def access_token_user_id(token: str) -> int:
    """Return the user id of a valid access token, raising ``JWTError`` otherwise."""
    claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm], issuer=settings.issuer)
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise JWTError("not an access token")
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise JWTError("malformed subject") from exc
