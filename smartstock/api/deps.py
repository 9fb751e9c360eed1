from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from smartstock.core.security import access_token_user_id
from smartstock.db.database import get_db
from smartstock.ledger.errors import (
    ItemNotFoundError,
    LedgerError,
    NegativeStockWarning,
    RevisionConflictError,
)
from smartstock.models.user import User, UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

ROLE_PERMISSIONS: dict[UserRole, set[str]] = {
    UserRole.ADMIN: {
        "inventory:manage",
        "inventory:view",
        "transactions:write",
        "reject:manage",
        "reports:view",
        "users:manage",
    },
    UserRole.STAFF: {"inventory:view", "transactions:write", "reject:manage", "reports:view"},
}


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    raw_token = (token or "").strip()
    if not raw_token:
        raw_token = (request.headers.get("x-access-token") or "").strip()
    if not raw_token:
        raise credentials_exception

    try:
        user_id = access_token_user_id(raw_token)
    except JWTError:
        raise credentials_exception

    user = db.scalar(select(User).where(User.id == user_id))
    if not user:
        raise credentials_exception
    return user


def require_permission(permission: str):
    def checker(current_user: User = Depends(get_current_user)) -> User:
        permissions = ROLE_PERMISSIONS.get(current_user.role, set())
        if permission not in permissions:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission required: {permission}",
            )
        return current_user

    return checker


def ledger_http_error(exc: LedgerError) -> HTTPException:
    if isinstance(exc, NegativeStockWarning):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "negative_stock",
                "message": exc.reason,
                "projected": {item_id: str(balance) for item_id, balance in exc.projected.items()},
                "hint": "Resubmit with confirm_negative=true to record the oversell",
            },
        )
    if isinstance(exc, RevisionConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.reason)
    if isinstance(exc, ItemNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.reason)
    # UnknownUnitError, InvalidConversionError, InvalidQuantityError
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.reason)
