"""Request bodies and the public user view (camelCase on the wire)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserOut(CamelModel):
    """Everything on the user record except the password hash and session token."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RegisterBody(CamelModel):
    full_name: str
    email: str
    username: str
    password: str
    avatar: str | None = None
    cover_image: str | None = None


class LoginBody(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class RefreshBody(CamelModel):
    refresh_token: str | None = None


class ChangePasswordBody(CamelModel):
    old_password: str
    new_password: str


class UpdateAccountBody(CamelModel):
    full_name: str | None = None
    email: str | None = None
