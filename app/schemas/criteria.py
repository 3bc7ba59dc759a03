from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


# --- Categories ---

class CriteriaCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    weight: Decimal = Field(..., ge=Decimal("0.01"), le=Decimal("100"), decimal_places=2)


class CriteriaCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    weight: Optional[Decimal] = Field(None, ge=Decimal("0.01"), le=Decimal("100"), decimal_places=2)
    is_active: Optional[bool] = None


class CriteriaCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    weight: Decimal
    is_active: bool
    created_date: Optional[datetime] = None
    updated_date: Optional[datetime] = None


class CriteriaSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    base_description: Optional[str] = None
    is_active: bool


class CriteriaCategoryWithCriteria(CriteriaCategoryResponse):
    criteria_count: int = 0
    criteria: List[CriteriaSummary] = []


class RebalanceWeightItem(BaseModel):
    category_id: int
    weight: Decimal = Field(..., ge=Decimal("0.01"), le=Decimal("100"))


class CategoryWeight(BaseModel):
    id: int
    name: str
    weight: Decimal


class WeightValidation(BaseModel):
    is_valid: bool
    total_weight: Decimal
    remaining_weight: Decimal
    errors: List[str] = []
    categories: List[CategoryWeight] = []


# --- Criteria ---

class RoleDescriptionCreate(BaseModel):
    role_id: int
    description: str = Field(..., min_length=1, max_length=500)
    example: Optional[str] = Field(None, max_length=500)


class RoleDescriptionUpdate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    example: Optional[str] = Field(None, max_length=500)


class RoleDescriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    criteria_id: int
    role_id: int
    description: str
    example: Optional[str] = None


class CriteriaCreate(BaseModel):
    category_id: int
    name: str = Field(..., min_length=1, max_length=100)
    base_description: Optional[str] = Field(None, max_length=500)


class CriteriaUpdate(BaseModel):
    category_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    base_description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class CriteriaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    name: str
    base_description: Optional[str] = None
    is_active: bool
    created_date: Optional[datetime] = None
    role_descriptions: List[RoleDescriptionResponse] = []


class CriteriaWithRoleDescription(BaseModel):
    id: int
    name: str
    category_name: str
    category_weight: Decimal
    base_description: Optional[str] = None
    role_description: Optional[str] = None
    role_example: Optional[str] = None
    is_active: bool
