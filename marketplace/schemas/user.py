"""User request/response schemas - API contract and validation."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9]+$")
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserLogin(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    """Partial update: only fields present in the request are applied."""

    username: str | None = Field(None, min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9]+$")
    email: EmailStr | None = None
    bio: str | None = None
    image: str | None = None
    password: str | None = Field(None, min_length=1)


class RegisterRequest(BaseModel):
    user: UserCreate


class LoginRequest(BaseModel):
    user: UserLogin


class UpdateUserRequest(BaseModel):
    user: UserUpdate


class AuthView(BaseModel):
    username: str
    email: str
    token: str
    bio: str | None = None
    image: str | None = None


class UserEnvelope(BaseModel):
    user: AuthView


class ProfileView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: str
    bio: str | None = None
    image: str | None = None
    following: bool = False


class ProfileEnvelope(BaseModel):
    profile: ProfileView
