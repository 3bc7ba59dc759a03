"""
Evaluation criteria grouped into weighted categories.

Active category weights are expected to sum to 100; this is validated on
demand by the category service, not enforced by the database.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class CriteriaCategory(Base):
    __tablename__ = "criteria_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    weight = Column(Numeric(5, 2), nullable=False)  # 0.01 - 100
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_date = Column(DateTime(timezone=True), server_default=func.now())
    updated_date = Column(DateTime(timezone=True), onupdate=func.now())

    criteria = relationship("Criteria", back_populates="category", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<CriteriaCategory {self.name} ({self.weight}%)>"


class Criteria(Base):
    __tablename__ = "criteria"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("criteria_categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    base_description = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_date = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("CriteriaCategory", back_populates="criteria")
    role_descriptions = relationship("RoleCriteriaDescription", back_populates="criteria", cascade="all, delete-orphan")
    scores = relationship("EvaluationScore", back_populates="criteria")

    def __repr__(self):
        return f"<Criteria {self.name}>"

    def applies_to(self, role_ids: set[int]) -> bool:
        """
        A criterion without role descriptions applies to everyone; otherwise
        only to holders of one of the described roles.
        """
        if not self.role_descriptions:
            return True
        return any(rd.role_id in role_ids for rd in self.role_descriptions)

    def description_for(self, role_ids: set[int]) -> str | None:
        for rd in self.role_descriptions:
            if rd.role_id in role_ids:
                return rd.description
        return self.base_description


class RoleCriteriaDescription(Base):
    __tablename__ = "role_criteria_descriptions"
    __table_args__ = (UniqueConstraint("criteria_id", "role_id", name="uq_role_criteria_description"),)

    id = Column(Integer, primary_key=True, index=True)
    criteria_id = Column(Integer, ForeignKey("criteria.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    example = Column(String(500), nullable=True)

    criteria = relationship("Criteria", back_populates="role_descriptions")
    role = relationship("Role", back_populates="criteria_descriptions")
