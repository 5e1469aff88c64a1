from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Integer, String, DateTime, Enum as SQLEnum
from sqlalchemy.orm import validates, relationship

from triclub.database import Base
from enum import Enum


# Club roles, lowest to highest
class UserRole(str, Enum):
    PENDING = "pending"
    MEMBER = "member"
    COACH = "coach"
    EXEC = "exec"
    ADMINISTRATOR = "administrator"


MEMBER_ROLES = [UserRole.MEMBER.value, UserRole.COACH.value, UserRole.EXEC.value, UserRole.ADMINISTRATOR.value]
STAFF_ROLES = [UserRole.EXEC.value, UserRole.ADMINISTRATOR.value]


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("absences >= 0", name="check_users_absences_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    phone_number = Column(String, nullable=True)
    role = Column(SQLEnum(UserRole, name="user_role_enum", values_callable=lambda roles: [r.value for r in roles]),
                  nullable=False, default=UserRole.PENDING)
    absences = Column(Integer, nullable=False, default=0)  # Late cancellations and no-shows
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    posts = relationship("ForumPost", back_populates="author")

    @validates("absences")
    def validate_absences(self, key, value):
        if value is not None and value < 0:
            raise ValueError("Absence count cannot be negative")
        return value
