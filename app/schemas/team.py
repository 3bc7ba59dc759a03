from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class EvaluatorAssignmentCreate(BaseModel):
    evaluator_id: int
    employee_id: int


class EvaluatorAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    evaluator_id: int
    employee_id: int
    is_active: bool
    assigned_date: Optional[datetime] = None


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_date: Optional[datetime] = None


class TeamWithAssignments(TeamResponse):
    assignments: List[EvaluatorAssignmentResponse] = []
