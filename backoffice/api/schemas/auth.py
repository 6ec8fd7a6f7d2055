from typing import Optional

from pydantic import Field

from backoffice.core.security import create_token_pair

from .common import CamelModel


class LoginRequest(CamelModel):
    telegram_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class RegisterAdminRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    telegram_id: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    status: bool = True


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    telegram_id: Optional[str] = Field(None, min_length=1, max_length=255)
    password: Optional[str] = Field(None, min_length=1)


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str

    @classmethod
    def for_identity(cls, identity) -> "TokenPair":
        pair = create_token_pair(identity)
        return cls(access_token=pair["accessToken"], refresh_token=pair["refreshToken"])
