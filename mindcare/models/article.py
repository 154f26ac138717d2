from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from mindcare.core.database import Base, utcnow


# One row per (article, user) like
class ArticleLike(Base):
    __tablename__ = "article_likes"
    __table_args__ = (UniqueConstraint("article_id", "user_id", name="uq_article_like"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)


class Article(Base):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, default="general")
    image_url = Column(String(500), default="")

    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    views = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="published", nullable=False)

    # Optimistic concurrency: every write to the article or its children bumps this
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    # Relationships
    author = relationship("User")
    comments = relationship(
        "Comment",
        back_populates="article",
        order_by="Comment.id",
        cascade="all, delete-orphan",
    )
    likes = relationship("ArticleLike", cascade="all, delete-orphan", order_by="ArticleLike.id")

    __mapper_args__ = {"version_id_col": version}

    @property
    def like_user_ids(self):
        return [like.user_id for like in self.likes]
