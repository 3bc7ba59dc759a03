from typing import List, Optional

from pydantic import BaseModel


class ScoreBand(BaseModel):
    label: str
    lower: int
    upper: int
    count: int
    percentage: float


class ScoreDistribution(BaseModel):
    total: int
    average_score: float
    bands: List[ScoreBand]


class CompletionMetrics(BaseModel):
    total: int
    completed: int
    pending: int
    draft: int
    overdue: int
    completion_rate: float
    on_time_rate: float


class TopPerformer(BaseModel):
    employee_id: int
    employee_name: str
    department: Optional[str] = None
    average_score: float
    evaluation_count: int
