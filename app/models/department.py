from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_date = Column(DateTime(timezone=True), server_default=func.now())

    users = relationship("User", back_populates="department")

    def __repr__(self):
        return f"<Department {self.name}>"

    @property
    def user_count(self) -> int:
        return sum(1 for u in self.users if u.is_active)
