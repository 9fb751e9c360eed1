import logging
import threading
import time
from collections import deque
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smartstock.api.deps import get_current_user, require_permission
from smartstock.core.config import settings
from smartstock.core.security import create_access_token, hash_password, verify_password
from smartstock.db.database import get_db
from smartstock.models.user import User, UserRole
from smartstock.schemas.auth import LoginRequest, TokenResponse, UserCreate, UserOut, UserUpdate
from smartstock.services.audit import get_client_ip, log_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


class LoginThrottle:
    """Counts failed logins per client and identity inside a rolling window."""

    def __init__(self, window_seconds: int, max_failures: int) -> None:
        self.window_seconds = window_seconds
        self.max_failures = max_failures
        self._failures: dict[tuple[str, str], deque[float]] = {}
        self._lock = threading.Lock()

    def _recent(self, key: tuple[str, str], now: float) -> deque[float]:
        failures = self._failures.setdefault(key, deque())
        while failures and now - failures[0] >= self.window_seconds:
            failures.popleft()
        return failures

    def is_blocked(self, ip: str, identity: str) -> bool:
        with self._lock:
            return len(self._recent((ip, identity.lower()), time.monotonic())) >= self.max_failures

    def record_failure(self, ip: str, identity: str) -> None:
        with self._lock:
            now = time.monotonic()
            self._recent((ip, identity.lower()), now).append(now)

    def reset(self, ip: str | None = None, identity: str | None = None) -> None:
        with self._lock:
            if ip is None or identity is None:
                self._failures.clear()
            else:
                self._failures.pop((ip, identity.lower()), None)


login_throttle = LoginThrottle(
    window_seconds=settings.login_rate_limit_window_seconds,
    max_failures=settings.login_rate_limit_max_attempts,
)


def authenticate_user(db: Session, identity: str, password: str, request: Request) -> User:
    ip = get_client_ip(request) or "unknown"
    if login_throttle.is_blocked(ip, identity):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts, try again later",
        )

    user = db.scalar(
        select(User).where(
            or_(
                func.lower(User.email) == identity.lower(),
                func.lower(User.username) == identity.lower(),
            )
        )
    )
    if not user or not verify_password(password, user.password_hash):
        login_throttle.record_failure(ip, identity)
        if user:
            user.failed_login_attempts += 1
            db.commit()
        logger.warning("Failed login for %s from %s", identity, ip)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user.failed_login_attempts = 0
    user.last_login_at = datetime.utcnow()
    login_throttle.reset(ip, identity)
    return user


def _issue_token(db: Session, user: User, request: Request, event_type: str) -> TokenResponse:
    log_audit(
        db=db,
        event_type=event_type,
        actor_user_id=user.id,
        entity_id=str(user.id),
        ip_address=get_client_ip(request),
    )
    db.commit()
    db.refresh(user)
    return TokenResponse(
        access_token=create_access_token(user.id, user.username, user.role.value),
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserOut.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = authenticate_user(db=db, identity=payload.identity, password=payload.password, request=request)
    return _issue_token(db, user, request, "auth.login.success")


@router.post("/token", response_model=TokenResponse)
def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    user = authenticate_user(db=db, identity=form_data.username, password=form_data.password, request=request)
    return _issue_token(db, user, request, "auth.token.success")


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/users", response_model=list[UserOut])
def list_users(
    _: User = Depends(require_permission("users:manage")),
    db: Session = Depends(get_db),
):
    return db.scalars(select(User).order_by(User.created_at.asc(), User.id.asc())).all()


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    admin_user: User = Depends(require_permission("users:manage")),
    db: Session = Depends(get_db),
):
    user = User(
        name=payload.name.strip(),
        email=payload.email.strip().lower(),
        username=payload.username.strip(),
        password_hash=hash_password(payload.password),
        role=payload.role,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email or username already registered")
    log_audit(
        db=db,
        event_type="users.created",
        actor_user_id=admin_user.id,
        entity_id=str(user.id),
        ip_address=get_client_ip(request),
        details={"username": user.username, "role": user.role.value},
    )
    db.commit()
    db.refresh(user)
    return user


@router.put("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    admin_user: User = Depends(require_permission("users:manage")),
    db: Session = Depends(get_db),
):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.id == admin_user.id and payload.role is not None and payload.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot demote your own account")

    if payload.name is not None:
        user.name = payload.name.strip()
    if payload.email is not None:
        user.email = payload.email.strip().lower()
    if payload.password is not None:
        user.password_hash = hash_password(payload.password)
    if payload.role is not None:
        user.role = payload.role
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    log_audit(
        db=db,
        event_type="users.updated",
        actor_user_id=admin_user.id,
        entity_id=str(user.id),
        ip_address=get_client_ip(request),
        details=payload.model_dump(exclude_unset=True, exclude={"password"}),
    )
    db.commit()
    db.refresh(user)
    return user


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    request: Request,
    admin_user: User = Depends(require_permission("users:manage")),
    db: Session = Depends(get_db),
):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.id == admin_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    log_audit(
        db=db,
        event_type="users.deleted",
        actor_user_id=admin_user.id,
        entity_id=str(user.id),
        ip_address=get_client_ip(request),
        details={"username": user.username},
    )
    db.delete(user)
    db.commit()
