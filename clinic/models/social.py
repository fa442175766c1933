import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    JSON,
)
from sqlalchemy.orm import relationship

from clinic.db.base import Base


class SocialPlatform(str, enum.Enum):
    FACEBOOK = "FACEBOOK"
    INSTAGRAM = "INSTAGRAM"
    LINKEDIN = "LINKEDIN"
    TWITTER = "TWITTER"


class PostStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"


class PlatformPostStatus(str, enum.Enum):
    PENDING = "PENDING"
    PUBLISHING = "PUBLISHING"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"


class SocialAccount(Base):
    __tablename__ = "social_accounts"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    platform = Column(String(20), nullable=False)
    account_name = Column(String(191), nullable=False)
    account_id = Column(String(191), nullable=True)
    username = Column(String(191), nullable=True)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SocialPost(Base):
    __tablename__ = "social_posts"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    content = Column(Text, nullable=False)
    hashtags = Column(JSON, nullable=False)
    media_urls = Column(JSON, nullable=False)
    platforms = Column(JSON, nullable=False)

    status = Column(String(16), default=PostStatus.DRAFT.value, nullable=False)
    scheduled_for = Column(DateTime, nullable=True, index=True)
    published_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    platform_posts = relationship("PlatformPost",
                                  back_populates="post",
                                  cascade="all, delete-orphan",
                                  order_by="PlatformPost.id")


class PlatformPost(Base):
    __tablename__ = "platform_posts"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer,
                     ForeignKey("social_posts.id", ondelete="CASCADE"),
                     nullable=False,
                     index=True)
    account_id = Column(Integer,
                        ForeignKey("social_accounts.id"),
                        nullable=False)
    platform = Column(String(20), nullable=False)
    status = Column(String(16),
                    default=PlatformPostStatus.PENDING.value,
                    nullable=False)
    platform_post_id = Column(String(191), nullable=True)
    platform_url = Column(String(500), nullable=True)
    error_message = Column(String(500), nullable=True)
    published_at = Column(DateTime, nullable=True)

    post = relationship("SocialPost", back_populates="platform_posts")
    account = relationship("SocialAccount")
