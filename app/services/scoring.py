"""
Scoring core

Pure computations over loaded ORM objects:
- weight validation of the active criteria categories
- weighted roll-up of an evaluation's scores into its total
- applicability of criteria to an employee and the completeness check

Nothing here commits; callers own the transaction.
"""
import logging
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.criteria import Criteria, CriteriaCategory
from app.models.evaluation import Evaluation
from app.schemas.criteria import CategoryWeight, WeightValidation

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
TWO_PLACES = Decimal("0.01")


def _fmt(value: Decimal) -> str:
    # 97.00 -> "97", 97.50 -> "97.5"
    return format(value.normalize(), "f")


def validate_weights(categories: Iterable[CriteriaCategory]) -> WeightValidation:
    """
    Check that the active category weights add up to 100.

    Inactive categories passed in are ignored. Zero active categories is
    invalid by definition.
    """
    active = [c for c in categories if c.is_active]
    total = sum((Decimal(str(c.weight)) for c in active), Decimal("0"))
    tolerance = Decimal(str(settings.scoring.weight_tolerance))

    errors: List[str] = []
    if not active:
        errors.append("no active criteria categories")
    elif abs(total - HUNDRED) > tolerance:
        errors.append(f"total weight is {_fmt(total)}, expected 100")

    for c in active:
        if Decimal(str(c.weight)) <= 0:
            errors.append(f"category '{c.name}' has a non-positive weight")

    return WeightValidation(
        is_valid=not errors,
        total_weight=total,
        remaining_weight=HUNDRED - total,
        errors=errors,
        categories=[CategoryWeight(id=c.id, name=c.name, weight=c.weight) for c in active],
    )


def calculate_total_score(evaluation: Evaluation) -> Decimal:
    """
    Weighted total of an evaluation.

    Active scores are grouped by category (only active criteria in active
    categories count), each category contributes the mean of its scored
    criteria times weight / 100. Unscored criteria are left out of their
    category's mean; a category with no scores contributes nothing.
    The result is rounded to two decimals and stored on the evaluation.
    """
    by_category: Dict[int, List[int]] = defaultdict(list)
    weights: Dict[int, Decimal] = {}

    for s in evaluation.scores:
        if not s.is_active:
            continue
        criteria = s.criteria
        if criteria is None or not criteria.is_active:
            continue
        category = criteria.category
        if category is None or not category.is_active:
            continue
        by_category[category.id].append(s.score)
        weights[category.id] = Decimal(str(category.weight))

    total = Decimal("0")
    for category_id, values in by_category.items():
        mean = Decimal(sum(values)) / Decimal(len(values))
        total += mean * weights[category_id] / HUNDRED

    total = total.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    evaluation.total_score = total
    return total


def applicable_criteria(db: Session, role_ids: set[int]) -> List[Criteria]:
    """Active criteria in active categories that apply to the given role-set."""
    candidates = (
        db.query(Criteria)
        .join(CriteriaCategory, Criteria.category_id == CriteriaCategory.id)
        .filter(Criteria.is_active == True, CriteriaCategory.is_active == True)  # noqa: E712
        .order_by(CriteriaCategory.id, Criteria.id)
        .all()
    )
    return [c for c in candidates if c.applies_to(role_ids)]


def missing_criteria(db: Session, evaluation: Evaluation, role_ids: Optional[set[int]] = None) -> List[Criteria]:
    """Applicable criteria that have no active score on the evaluation yet."""
    if role_ids is None:
        role_ids = evaluation.employee.role_ids
    scored = {s.criteria_id for s in evaluation.scores if s.is_active}
    return [c for c in applicable_criteria(db, role_ids) if c.id not in scored]


def check_score_bounds(score: int) -> bool:
    return settings.scoring.min_score <= score <= settings.scoring.max_score
