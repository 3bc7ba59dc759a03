from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base
import enum


class EvaluationStatus(str, enum.Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    COMPLETED = "Completed"
    APPROVED = "Approved"


class Evaluation(Base):
    __tablename__ = "evaluations"

    id = Column(Integer, primary_key=True, index=True)
    evaluator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    period = Column(String(100), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False, index=True)
    # Stored as the enum value for simplicity with SQLite
    status = Column(String(20), default=EvaluationStatus.DRAFT.value, nullable=False, index=True)
    total_score = Column(Numeric(6, 2), default=0, nullable=False)
    general_comments = Column(String(1000), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_date = Column(DateTime(timezone=True), server_default=func.now())
    completed_date = Column(DateTime(timezone=True), nullable=True)

    evaluator = relationship("User", foreign_keys=[evaluator_id])
    employee = relationship("User", foreign_keys=[employee_id])
    scores = relationship("EvaluationScore", back_populates="evaluation", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Evaluation {self.id} {self.period} ({self.status})>"


class EvaluationScore(Base):
    __tablename__ = "evaluation_scores"
    __table_args__ = (UniqueConstraint("evaluation_id", "criteria_id", name="uq_evaluation_score_criteria"),)

    id = Column(Integer, primary_key=True, index=True)
    evaluation_id = Column(Integer, ForeignKey("evaluations.id", ondelete="CASCADE"), nullable=False, index=True)
    criteria_id = Column(Integer, ForeignKey("criteria.id"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_date = Column(DateTime(timezone=True), server_default=func.now())
    updated_date = Column(DateTime(timezone=True), onupdate=func.now())

    evaluation = relationship("Evaluation", back_populates="scores")
    criteria = relationship("Criteria", back_populates="scores")
    comments = relationship("Comment", back_populates="score", cascade="all, delete-orphan")


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    score_id = Column(Integer, ForeignKey("evaluation_scores.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)  # soft delete
    created_date = Column(DateTime(timezone=True), server_default=func.now())
    updated_date = Column(DateTime(timezone=True), onupdate=func.now())

    score = relationship("EvaluationScore", back_populates="comments")
