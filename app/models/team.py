"""
Teams group evaluator -> employee assignments.
An evaluator may only evaluate employees linked to them by an active assignment.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    created_date = Column(DateTime(timezone=True), server_default=func.now())

    assignments = relationship("EvaluatorAssignment", back_populates="team", cascade="all, delete-orphan")


class EvaluatorAssignment(Base):
    __tablename__ = "evaluator_assignments"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    evaluator_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_date = Column(DateTime(timezone=True), server_default=func.now())
    is_active = Column(Boolean, default=True, nullable=False)

    team = relationship("Team", back_populates="assignments")
    evaluator = relationship("User", foreign_keys=[evaluator_id])
    employee = relationship("User", foreign_keys=[employee_id])
