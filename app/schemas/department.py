from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, Optional
from datetime import datetime


class DepartmentBase(BaseModel):
    """Base schema for department data."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class DepartmentCreate(DepartmentBase):
    """Schema for creating a new department."""
    pass


class DepartmentUpdate(BaseModel):
    """Schema for updating a department."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class DepartmentResponse(DepartmentBase):
    """Schema for department response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool
    created_date: Optional[datetime] = None
    user_count: Optional[int] = None


class DepartmentStats(BaseModel):
    department_id: int
    department_name: str
    user_count: int
    evaluations_by_status: Dict[str, int]
    average_completed_score: float
