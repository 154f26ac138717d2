from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey

from mindcare.core.database import Base, utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # like | comment | reply | forum_reply | consultation_message; forum_comment is reserved
    type = Column(String(30), nullable=False)

    # Weak references: no FK, parents may be deleted underneath
    article_id = Column(Integer, nullable=True)
    forum_id = Column(Integer, nullable=True)
    consultation_id = Column(Integer, nullable=True)
    comment_id = Column(Integer, nullable=True)

    content = Column(Text, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, index=True)
