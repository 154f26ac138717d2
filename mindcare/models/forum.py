from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean, ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship

from mindcare.core.database import Base, utcnow


class ForumReplyLike(Base):
    __tablename__ = "forum_reply_likes"
    __table_args__ = (UniqueConstraint("reply_id", "user_id", name="uq_forum_reply_like"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    reply_id = Column(Integer, ForeignKey("forum_replies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)


class ForumThread(Base):
    __tablename__ = "forum_threads"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    category = Column(String(30), nullable=False, default="general")
    tags = Column(JSON, default=list)

    # active | closed | hidden
    status = Column(String(20), default="active", nullable=False)
    views = Column(Integer, default=0, nullable=False)
    is_anonymous = Column(Boolean, default=False)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    author = relationship("User")
    replies = relationship(
        "ForumReply",
        back_populates="thread",
        order_by="ForumReply.id",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}


class ForumReply(Base):
    __tablename__ = "forum_replies"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    thread_id = Column(Integer, ForeignKey("forum_threads.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    is_solution = Column(Boolean, default=False, nullable=False)
    is_anonymous = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow)

    thread = relationship("ForumThread", back_populates="replies")
    user = relationship("User")
    likes = relationship("ForumReplyLike", cascade="all, delete-orphan", order_by="ForumReplyLike.id")

    @property
    def like_user_ids(self):
        return [like.user_id for like in self.likes]
