"""Request bodies accepted by the API."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from reelcritic.domain.content import ContentKind

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
_PASSWORD_CLASSES = (re.compile(r"[a-z]"), re.compile(r"[A-Z]"), re.compile(r"\d"))


def _check_password(value: str) -> str:
    if not all(pattern.search(value) for pattern in _PASSWORD_CLASSES):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "and one number"
        )
    return value


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        return _check_password(value)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class PreferencesUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    favorite_genres: list[str] | None = Field(default=None, alias="favoriteGenres")
    email_notifications: bool | None = Field(default=None, alias="emailNotifications")
    public_profile: bool | None = Field(default=None, alias="publicProfile")


class ProfileUpdate(BaseModel):
    username: str | None = Field(
        default=None, min_length=3, max_length=30, pattern=USERNAME_PATTERN
    )
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=6)
    preferences: PreferencesUpdate | None = None

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str | None) -> str | None:
        return None if value is None else _check_password(value)


class DeleteUserRequest(BaseModel):
    email: EmailStr


class ReviewCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    content: str = Field(min_length=10, max_length=5000)
    rating: int = Field(ge=1, le=5)

    @field_validator("title", "content", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class ReviewUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=200)
    content: str | None = Field(default=None, min_length=10, max_length=5000)
    rating: int | None = Field(default=None, ge=1, le=5)


class CommentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(min_length=1, max_length=1000)
    parent_comment: str | None = Field(default=None, alias="parentComment")

    @field_validator("content", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class GenreBody(BaseModel):
    name: str = Field(min_length=1, max_length=32)

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class LikeTarget(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content_type: ContentKind = Field(alias="contentType")
    content_id: str = Field(min_length=1, alias="contentId")


class BatchLikeCheck(BaseModel):
    items: list[LikeTarget] = Field(min_length=1, max_length=50)
