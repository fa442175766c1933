# clinic/api/routes_social.py
import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from clinic.api.deps import get_db, owner_user
from clinic.core.config import settings
from clinic.models.social import (
    PlatformPost,
    PlatformPostStatus,
    PostStatus,
    SocialAccount,
    SocialPost,
)
from clinic.models.user import User
from clinic.schemas.social import (
    SocialAccountCreate,
    SocialAccountOut,
    SocialAccountUpdate,
    SocialPostCreate,
    SocialPostOut,
)
from clinic.services.social_publisher import account_for, publish_due_posts, publish_post

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------
#  Accounts
# ---------------------------------------------------------------------


def _get_account(db: Session, clinic_id: int, account_id: int) -> SocialAccount:
    acc = db.query(SocialAccount).filter(SocialAccount.id == account_id,
                                         SocialAccount.clinic_id == clinic_id).first()
    if not acc:
        raise HTTPException(status_code=404, detail="Account not found")
    return acc


@router.get("/accounts")
def list_accounts(db: Session = Depends(get_db),
                  user: User = Depends(owner_user)) -> Dict[str, Any]:
    rows = (db.query(SocialAccount).filter(
        SocialAccount.clinic_id == user.clinic_id).order_by(
            SocialAccount.platform.asc(), SocialAccount.id.asc()).all())
    return {"accounts": [SocialAccountOut.model_validate(a) for a in rows]}


@router.post("/accounts", response_model=SocialAccountOut, status_code=201)
def create_account(payload: SocialAccountCreate,
                   db: Session = Depends(get_db),
                   user: User = Depends(owner_user)):
    acc = SocialAccount(clinic_id=user.clinic_id, **payload.model_dump())
    db.add(acc)
    db.commit()
    db.refresh(acc)
    return acc


@router.put("/accounts/{account_id}", response_model=SocialAccountOut)
def update_account(account_id: int,
                   payload: SocialAccountUpdate,
                   db: Session = Depends(get_db),
                   user: User = Depends(owner_user)):
    acc = _get_account(db, user.clinic_id, account_id)
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(acc, k, v)
    db.commit()
    db.refresh(acc)
    return acc


@router.delete("/accounts/{account_id}")
def delete_account(account_id: int,
                   db: Session = Depends(get_db),
                   user: User = Depends(owner_user)):
    acc = _get_account(db, user.clinic_id, account_id)
    in_use = db.query(PlatformPost.id).filter(PlatformPost.account_id == acc.id).first()
    if in_use:
        # still referenced by platform posts
        acc.is_active = False
        db.commit()
        return {"message": "Account deactivated"}
    db.delete(acc)
    db.commit()
    return {"message": "Account deleted"}


# ---------------------------------------------------------------------
#  Posts
# ---------------------------------------------------------------------


def _get_post(db: Session, clinic_id: int, post_id: int) -> SocialPost:
    post = (db.query(SocialPost).options(selectinload(SocialPost.platform_posts)).filter(
        SocialPost.id == post_id, SocialPost.clinic_id == clinic_id).first())
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("/posts/stats")
def post_stats(db: Session = Depends(get_db),
               user: User = Depends(owner_user)) -> Dict[str, Any]:
    counts = dict(
        db.query(SocialPost.status, func.count(SocialPost.id)).filter(
            SocialPost.clinic_id == user.clinic_id).group_by(SocialPost.status).all())
    out = {s.value.lower(): int(counts.get(s.value, 0)) for s in PostStatus}
    out["total"] = sum(out.values())
    return out


@router.get("/posts")
def list_posts(status: Optional[str] = Query(None),
               db: Session = Depends(get_db),
               user: User = Depends(owner_user)) -> Dict[str, Any]:
    q = (db.query(SocialPost).options(selectinload(SocialPost.platform_posts)).filter(
        SocialPost.clinic_id == user.clinic_id))
    if status and status.upper() != "ALL":
        q = q.filter(SocialPost.status == status.upper())
    rows = q.order_by(SocialPost.created_at.desc(), SocialPost.id.desc()).all()
    return {"posts": [SocialPostOut.model_validate(p) for p in rows]}


@router.post("/posts", response_model=SocialPostOut, status_code=201)
def create_post(payload: SocialPostCreate,
                db: Session = Depends(get_db),
                user: User = Depends(owner_user)):
    try:
        post = SocialPost(
            clinic_id=user.clinic_id,
            content=payload.content,
            hashtags=payload.hashtags,
            media_urls=payload.media_urls,
            platforms=payload.platforms,
            status=(PostStatus.SCHEDULED.value
                    if payload.scheduled_for else PostStatus.DRAFT.value),
            scheduled_for=payload.scheduled_for,
            created_by=user.id,
        )
        for platform in payload.platforms:
            acc = account_for(db, clinic_id=user.clinic_id, platform=platform)
            post.platform_posts.append(
                PlatformPost(account_id=acc.id,
                             platform=platform,
                             status=PlatformPostStatus.PENDING.value))
        db.add(post)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return _get_post(db, user.clinic_id, post.id)


@router.get("/posts/{post_id}", response_model=SocialPostOut)
def get_post(post_id: int,
             db: Session = Depends(get_db),
             user: User = Depends(owner_user)):
    return _get_post(db, user.clinic_id, post_id)


@router.delete("/posts/{post_id}")
def delete_post(post_id: int,
                db: Session = Depends(get_db),
                user: User = Depends(owner_user)):
    post = _get_post(db, user.clinic_id, post_id)
    db.delete(post)
    db.commit()
    return {"message": "Post deleted"}


@router.post("/posts/{post_id}/publish")
def publish(post_id: int,
            db: Session = Depends(get_db),
            user: User = Depends(owner_user)) -> Dict[str, Any]:
    post = _get_post(db, user.clinic_id, post_id)
    if post.status == PostStatus.PUBLISHED.value:
        raise HTTPException(status_code=400, detail="Post is already published")
    result = publish_post(db, post)
    db.refresh(post)
    result["post"] = SocialPostOut.model_validate(post)
    return result


# ---------------------------------------------------------------------
#  Cron
# ---------------------------------------------------------------------


@router.post("/cron/publish-scheduled")
def cron_publish_scheduled(authorization: Optional[str] = Header(None),
                           db: Session = Depends(get_db)) -> Dict[str, Any]:
    secret = settings.CRON_SECRET
    if not secret:
        logger.error("CRON_SECRET is not configured")
        raise HTTPException(status_code=500, detail="Cron secret not configured")
    expected = f"Bearer {secret}".encode()
    if not hmac.compare_digest((authorization or "").encode(), expected):
        raise HTTPException(status_code=401, detail="Unauthorized")

    summary = publish_due_posts(db)
    return {"message": "Scheduled posts processed", **summary}
