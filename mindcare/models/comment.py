"""Article comment models"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from mindcare.core.database import Base, utcnow


class Comment(Base):
    """Comment on an article; owns an ordered list of replies"""
    __tablename__ = "article_comments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    article = relationship("Article", back_populates="comments")
    user = relationship("User")
    replies = relationship(
        "Reply",
        back_populates="comment",
        order_by="Reply.id",
        cascade="all, delete-orphan",
    )


class Reply(Base):
    """Reply to an article comment"""
    __tablename__ = "article_replies"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    comment_id = Column(Integer, ForeignKey("article_comments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    comment = relationship("Comment", back_populates="replies")
    user = relationship("User")
