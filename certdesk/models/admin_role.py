from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from certdesk.db.base import Base

ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"
ROLE_NAMES = (ROLE_ADMIN, ROLE_SUPER_ADMIN)


class AdminRole(Base):
    __tablename__ = "admin_roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    role = Column(String(32), nullable=False)

    user = relationship("User", back_populates="admin_role")

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'super_admin')", name="role_name"),
    )
