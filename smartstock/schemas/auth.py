from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from smartstock.models.user import UserRole


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    identity: str = Field(min_length=1, max_length=320, description="Email or username")
    password: str = Field(min_length=1, max_length=128)

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_identity_fields(cls, data):
        if not isinstance(data, dict):
            return data
        if data.get("identity"):
            return data
        for key in ("username", "email"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                data["identity"] = value
                break
        return data

    @field_validator("identity")
    @classmethod
    def normalize_identity(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("identity must not be empty")
        return normalized


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: "UserOut"


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=5, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    username: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")
    password: str = Field(min_length=8, max_length=128)
    role: UserRole = UserRole.STAFF


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    email: str | None = Field(default=None, min_length=5, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str | None = Field(default=None, min_length=8, max_length=128)
    role: UserRole | None = None


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    username: str
    role: UserRole
    last_login_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


TokenResponse.model_rebuild()
