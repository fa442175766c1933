# FILE: clinic/services/social_publisher.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from clinic.models.social import (
    PlatformPost,
    PlatformPostStatus,
    PostStatus,
    SocialAccount,
    SocialPost,
)

logger = logging.getLogger(__name__)

# platform -> (post id prefix, public url base)
MOCK_TARGETS = {
    "FACEBOOK": ("fb", "https://facebook.com/posts/"),
    "INSTAGRAM": ("ig", "https://instagram.com/p/"),
    "LINKEDIN": ("li", "https://linkedin.com/feed/update/"),
    "TWITTER": ("tw", "https://twitter.com/i/status/"),
}


@dataclass
class PublishResult:
    success: bool
    platform_post_id: Optional[str] = None
    platform_url: Optional[str] = None
    error: Optional[str] = None


def publish_to_platform(platform: str, *, account: Optional[SocialAccount],
                        content: str,
                        media_urls: Sequence[str] = ()) -> PublishResult:
    """
    Mock publisher: known platforms succeed with a synthetic id and URL,
    anything else fails with "Unsupported platform".
    """
    target = MOCK_TARGETS.get((platform or "").upper())
    if not target:
        return PublishResult(success=False, error="Unsupported platform")
    prefix, base = target
    post_id = f"{prefix}_{int(time.time() * 1000)}"
    logger.info("mock publish to %s account=%s media=%s: %s", platform,
                getattr(account, "id", None), len(media_urls), content[:50])
    return PublishResult(success=True,
                         platform_post_id=post_id,
                         platform_url=f"{base}{post_id}")


def account_for(db: Session, *, clinic_id: int, platform: str) -> SocialAccount:
    """Existing account for the platform, or a placeholder one."""
    acc = (db.query(SocialAccount).filter(
        SocialAccount.clinic_id == clinic_id,
        SocialAccount.platform == platform).order_by(
            SocialAccount.is_active.desc(), SocialAccount.id.asc()).first())
    if acc:
        return acc
    acc = SocialAccount(
        clinic_id=clinic_id,
        platform=platform,
        account_name=f"My {platform.title()} Account",
        account_id=f"{platform.lower()}-{int(time.time() * 1000)}",
        username=platform.lower(),
        is_active=True,
    )
    db.add(acc)
    db.flush()
    return acc


def compose_text(post: SocialPost) -> str:
    tags = " ".join(
        t if t.startswith("#") else f"#{t}" for t in (post.hashtags or []) if t)
    return f"{post.content}\n\n{tags}" if tags else post.content


def publish_post(db: Session, post: SocialPost,
                 now: Optional[datetime] = None) -> Dict[str, object]:
    """
    Push every platform post of one post and settle the post status:
    PUBLISHED only when every platform succeeded, else FAILED. Commits.
    """
    now = now or datetime.utcnow()
    text = compose_text(post)
    results: List[Dict[str, object]] = []

    for pp in post.platform_posts:
        if pp.status == PlatformPostStatus.PUBLISHED.value:
            results.append({"platform": pp.platform, "success": True,
                             "platform_url": pp.platform_url})
            continue

        pp.status = PlatformPostStatus.PUBLISHING.value
        db.flush()

        res = publish_to_platform(pp.platform,
                                  account=pp.account,
                                  content=text,
                                  media_urls=post.media_urls or [])
        if res.success:
            pp.status = PlatformPostStatus.PUBLISHED.value
            pp.platform_post_id = res.platform_post_id
            pp.platform_url = res.platform_url
            pp.error_message = None
            pp.published_at = now
        else:
            pp.status = PlatformPostStatus.FAILED.value
            pp.error_message = res.error
        results.append({
            "platform": pp.platform,
            "success": res.success,
            "platform_url": res.platform_url,
            "error": res.error,
        })

    all_ok = bool(results) and all(r["success"] for r in results)
    post.status = PostStatus.PUBLISHED.value if all_ok else PostStatus.FAILED.value
    if all_ok:
        post.published_at = now
    db.commit()

    logger.info("post %s -> %s (%s platforms)", post.id, post.status, len(results))
    return {"success": all_ok, "status": post.status, "results": results}


def due_posts(db: Session, now: Optional[datetime] = None) -> List[SocialPost]:
    now = now or datetime.utcnow()
    return (db.query(SocialPost).filter(
        SocialPost.status == PostStatus.SCHEDULED.value,
        SocialPost.scheduled_for.isnot(None),
        SocialPost.scheduled_for <= now,
    ).order_by(SocialPost.scheduled_for.asc(), SocialPost.id.asc()).all())


def publish_due_posts(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    posts = due_posts(db, now)
    ok = 0
    for post in posts:
        try:
            if publish_post(db, post, now)["success"]:
                ok += 1
        except Exception:
            db.rollback()
            logger.exception("scheduled publish failed for post %s", post.id)
    return {"total": len(posts), "successful": ok, "failed": len(posts) - ok}
