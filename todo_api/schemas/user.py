import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from todo_api.schemas.common import CamelModel

PASSWORD_PATTERN = r"^[a-zA-Z0-9]{3,30}$"


class UserCreate(CamelModel):
    first_name: str = Field(min_length=3, max_length=30)
    last_name: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(pattern=PASSWORD_PATTERN)
    confirm_password: str

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        if len(v.strip()) < 3:
            raise ValueError("must contain at least 3 non-blank characters")
        return v.strip()

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("confirmPassword must match password")
        return self


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserSummary(CamelModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    profile_image_url: Optional[str] = None


class UserOut(UserSummary):
    created_at: datetime
    updated_at: datetime


class RegisterOut(CamelModel):
    message: str
    id: uuid.UUID


class LoginOut(CamelModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserSummary


class ProfileImageOut(CamelModel):
    message: str
    user: UserSummary
