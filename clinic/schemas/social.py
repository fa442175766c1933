# FILE: clinic/schemas/social.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SocialAccountCreate(BaseModel):
    platform: str = Field(min_length=1, max_length=20)
    account_name: str = Field(min_length=1, max_length=191)
    account_id: Optional[str] = None
    username: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    is_active: bool = True

    @field_validator("platform")
    @classmethod
    def _upper(cls, v: str):
        return v.strip().upper()


class SocialAccountUpdate(BaseModel):
    account_name: Optional[str] = Field(default=None, min_length=1, max_length=191)
    username: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    is_active: Optional[bool] = None


class SocialAccountOut(BaseModel):
    """Tokens never leave the server."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    platform: str
    account_name: str
    account_id: Optional[str] = None
    username: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime


class SocialPostCreate(BaseModel):
    content: str = Field(min_length=1)
    hashtags: List[str] = []
    media_urls: List[str] = []
    platforms: List[str]
    scheduled_for: Optional[datetime] = None

    @field_validator("platforms")
    @classmethod
    def _platforms_required(cls, v: List[str]):
        cleaned = []
        for p in v:
            p = (p or "").strip().upper()
            if p and p not in cleaned:
                cleaned.append(p)
        if not cleaned:
            raise ValueError("At least one platform is required")
        return cleaned


class PlatformPostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    platform: str
    status: str
    platform_post_id: Optional[str] = None
    platform_url: Optional[str] = None
    error_message: Optional[str] = None
    published_at: Optional[datetime] = None


class SocialPostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    hashtags: List[str] = []
    media_urls: List[str] = []
    platforms: List[str] = []
    status: str
    scheduled_for: Optional[datetime] = None
    published_at: Optional[datetime] = None
    created_by: Optional[int] = None
    created_at: datetime
    platform_posts: List[PlatformPostOut] = []
