from sqlalchemy import Column, String, Enum, ForeignKey
from sqlalchemy.orm import relationship

from app.constants.constants import UserRole
from app.models.base import Base, TimestampMixin


class Profile(Base, TimestampMixin):
    __tablename__ = "profiles"
    id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    bio = Column(String(300), nullable=True)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)

    user = relationship("User", back_populates="profile")

    def __repr__(self):
        return f"<Profile {self.username} ({self.role})>"
