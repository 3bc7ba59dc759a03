"""
Read-only score analytics over the evaluations a user may see.

Only finished evaluations (Completed or Approved) with a positive total feed
the score figures; completion figures count every visible evaluation.
"""
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import joinedload

from app.core.config import settings
from app.models.evaluation import Evaluation, EvaluationStatus
from app.models.user import User
from app.schemas.analytics import CompletionMetrics, ScoreBand, ScoreDistribution, TopPerformer
from app.services.base import BaseService
from app.services.evaluation_service import EvaluationService
from app.services.notification import utc_today

FINISHED_STATUSES = (EvaluationStatus.COMPLETED.value, EvaluationStatus.APPROVED.value)
TWO_PLACES = Decimal("0.01")


def _percent(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return float((Decimal(part) * 100 / Decimal(whole)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def _mean(values: List[Decimal]) -> float:
    if not values:
        return 0.0
    return float((sum(values) / len(values)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


class AnalyticsService(BaseService):

    def _evaluations(
        self, current_user: User, department_id: Optional[int] = None, period: Optional[str] = None
    ) -> List[Evaluation]:
        query = EvaluationService(self.db).visible_evaluations(current_user).options(
            joinedload(Evaluation.employee).joinedload(User.department)
        )
        if period:
            query = query.filter(Evaluation.period == period)
        evaluations = query.all()
        if department_id is not None:
            evaluations = [e for e in evaluations if e.employee.department_id == department_id]
        return evaluations

    @staticmethod
    def _finished_scores(evaluations: List[Evaluation]) -> List[Evaluation]:
        return [
            e for e in evaluations
            if e.status in FINISHED_STATUSES and e.total_score is not None and e.total_score > 0
        ]

    def score_distribution(
        self, current_user: User, department_id: Optional[int] = None, period: Optional[str] = None
    ) -> ScoreDistribution:
        """
        Count finished evaluations per one-point band of the score scale.

        With a 1-5 scale the bands are 1-2, 2-3, 3-4 and 4-5; each band holds
        its lower bound and the last one also holds the scale maximum.
        """
        low, high = settings.scoring.min_score, settings.scoring.max_score
        finished = self._finished_scores(self._evaluations(current_user, department_id, period))

        counts = [0] * max(high - low, 1)
        for evaluation in finished:
            index = int(Decimal(str(evaluation.total_score))) - low
            # Partially weighted totals can fall under the scale minimum
            counts[min(max(index, 0), len(counts) - 1)] += 1

        bands = [
            ScoreBand(
                label=f"{low + i}-{low + i + 1}",
                lower=low + i,
                upper=low + i + 1,
                count=count,
                percentage=_percent(count, len(finished)),
            )
            for i, count in enumerate(counts)
        ]
        return ScoreDistribution(
            total=len(finished),
            average_score=_mean([Decimal(str(e.total_score)) for e in finished]),
            bands=bands,
        )

    def completion_metrics(
        self, current_user: User, department_id: Optional[int] = None, period: Optional[str] = None
    ) -> CompletionMetrics:
        today = utc_today()
        evaluations = self._evaluations(current_user, department_id, period)
        finished = [e for e in evaluations if e.status in FINISHED_STATUSES]
        pending = [e for e in evaluations if e.status == EvaluationStatus.PENDING.value]
        on_time = [e for e in finished if e.completed_date and e.completed_date.date() <= e.end_date]

        return CompletionMetrics(
            total=len(evaluations),
            completed=len(finished),
            pending=len(pending),
            draft=sum(1 for e in evaluations if e.status == EvaluationStatus.DRAFT.value),
            overdue=sum(1 for e in pending if e.end_date < today),
            completion_rate=_percent(len(finished), len(evaluations)),
            on_time_rate=_percent(len(on_time), len(finished)),
        )

    def top_performers(
        self,
        current_user: User,
        limit: int = 10,
        department_id: Optional[int] = None,
        period: Optional[str] = None,
    ) -> List[TopPerformer]:
        """Employees ranked by the mean of their finished evaluation totals."""
        by_employee: Dict[int, List[Evaluation]] = defaultdict(list)
        for evaluation in self._finished_scores(self._evaluations(current_user, department_id, period)):
            by_employee[evaluation.employee_id].append(evaluation)

        performers = []
        for employee_id, evaluations in by_employee.items():
            employee = evaluations[0].employee
            performers.append(
                TopPerformer(
                    employee_id=employee_id,
                    employee_name=employee.full_name,
                    department=employee.department.name if employee.department else None,
                    average_score=_mean([Decimal(str(e.total_score)) for e in evaluations]),
                    evaluation_count=len(evaluations),
                )
            )
        performers.sort(key=lambda p: (-p.average_score, p.employee_name))
        return performers[:limit]
