from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean

from mindcare.core.database import Base, utcnow


ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False)
    full_name = Column(String(100), default="")
    profile_picture = Column(String(500), default="")
    bio = Column(Text, default="")

    # student | admin
    role = Column(String(20), default=ROLE_STUDENT, nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
