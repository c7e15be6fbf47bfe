import re
from datetime import datetime
from typing import Annotated, List, Optional

from email_validator import validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"\d"), "a number"),
    (re.compile(r"""[!@#$%^&*()_+\[\]{};':"\\|,.<>/?]"""), "a special character"),
)


def check_email_format(value: str) -> str:
    # the address is kept exactly as submitted
    validate_email(value, check_deliverability=False)
    return value


Email = Annotated[str, AfterValidator(check_email_format)]


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(min_length=1, max_length=128)


class AccessTokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken")


class RegisterRequest(BaseModel):
    name: str = Field(min_length=4, max_length=150)
    email: Email
    password: str = Field(min_length=8, max_length=128)

    @field_validator("password")
    def check_password_strength(cls, value: str) -> str:
        missing = [label for pattern, label in PASSWORD_RULES if not pattern.search(value)]
        if missing:
            raise ValueError("Password must include " + ", ".join(missing))
        return value


class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=4, max_length=150)
    email: Optional[Email] = None

    @model_validator(mode="after")
    def require_a_field(self) -> "UserUpdateRequest":
        if self.name is None and self.email is None:
            raise ValueError("At least one of name or email is required")
        return self


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str


class UserListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    email: str
    created_at: datetime = Field(alias="createdAt")


class PageMetaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    page: int
    per_page: int = Field(alias="perPage")
    total: int
    total_pages: int = Field(alias="totalPages")
    has_next_page: bool = Field(alias="hasNextPage")
    has_prev_page: bool = Field(alias="hasPrevPage")


class UserListResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    data: List[UserListItem]
    meta: PageMetaOut


class UserDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    email: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class UpdateUserResponse(BaseModel):
    message: str
    user: UserDetail


class RestoreUserResponse(BaseModel):
    message: str
    id: str
