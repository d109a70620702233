# repositories/like_repository.py
from typing import Optional
from sqlalchemy import select
from extensions.database import db
from models.comment_like import CommentLike


class LikeRepository:
    @staticmethod
    def find(comment_id: int, fingerprint: str) -> Optional[CommentLike]:
        stmt = select(CommentLike).where(
            CommentLike.comment_id == comment_id,
            CommentLike.fingerprint == fingerprint,
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def create(comment_id: int, fingerprint: str) -> CommentLike:
        like = CommentLike(comment_id=comment_id, fingerprint=fingerprint)
        db.session.add(like)
        db.session.flush()
        return like
