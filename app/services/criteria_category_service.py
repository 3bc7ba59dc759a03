"""
Criteria category service

Weights are percentages of an evaluation's total. Writes keep the sum of the
active weights at or below 100; `validate_weights` reports whether the sum is
exactly 100, which is what scoring needs.
"""
from decimal import Decimal
from typing import List

from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.criteria import CriteriaCategory
from app.models.user import User
from app.schemas.criteria import (
    CriteriaCategoryCreate,
    CriteriaCategoryUpdate,
    CriteriaCategoryWithCriteria,
    CriteriaSummary,
    RebalanceWeightItem,
    WeightValidation,
)
from app.services.base import BaseService
from app.services.scoring import validate_weights


class CriteriaCategoryService(BaseService):

    def _get(self, category_id: int) -> CriteriaCategory:
        category = self.db.query(CriteriaCategory).filter(CriteriaCategory.id == category_id).first()
        if not category:
            raise NotFoundError("Criteria category", category_id)
        return category

    def _active_total(self, exclude_id: int | None = None) -> Decimal:
        query = self.db.query(CriteriaCategory).filter(CriteriaCategory.is_active == True)  # noqa: E712
        if exclude_id is not None:
            query = query.filter(CriteriaCategory.id != exclude_id)
        return sum((Decimal(str(c.weight)) for c in query.all()), Decimal("0"))

    def create_category(self, data: CriteriaCategoryCreate, current_user: User) -> CriteriaCategory:
        current_total = self._active_total()
        if current_total + data.weight > 100:
            raise ValidationError(
                f"Total weight would exceed 100%. Current total: {current_total}%, Requested: {data.weight}%"
            )

        category = CriteriaCategory(
            name=data.name,
            description=data.description,
            weight=data.weight,
            is_active=True,
        )
        self.db.add(category)
        self.commit()
        self.db.refresh(category)
        self.log_info(f"Criteria category created: {category.name} ({category.weight}%) by user {current_user.id}")
        return category

    def update_category(self, category_id: int, data: CriteriaCategoryUpdate, current_user: User) -> CriteriaCategory:
        category = self._get(category_id)
        changes = data.model_dump(exclude_unset=True)

        will_be_active = changes.get("is_active", category.is_active)
        new_weight = changes.get("weight", category.weight)
        if will_be_active and ("weight" in changes or "is_active" in changes):
            new_total = self._active_total(exclude_id=category.id) + Decimal(str(new_weight))
            if new_total > 100:
                raise ValidationError(
                    f"Total weight would exceed 100%. New total would be: {new_total}%"
                )

        for field, value in changes.items():
            setattr(category, field, value)
        self.commit()
        self.db.refresh(category)
        self.log_info(f"Criteria category {category.id} updated by user {current_user.id}")
        return category

    def deactivate_category(self, category_id: int, current_user: User) -> CriteriaCategory:
        category = self._get(category_id)
        category.is_active = False
        self.commit()
        self.log_info(f"Criteria category deactivated: ID {category_id} by user {current_user.id}")
        return category

    def reactivate_category(self, category_id: int, current_user: User) -> CriteriaCategory:
        category = self._get(category_id)
        if not category.is_active:
            new_total = self._active_total() + Decimal(str(category.weight))
            if new_total > 100:
                raise ValidationError(
                    f"Reactivating would bring the total weight to {new_total}%"
                )
        category.is_active = True
        self.commit()
        self.log_info(f"Criteria category reactivated: ID {category_id} by user {current_user.id}")
        return category

    def cascade_deactivate_category(self, category_id: int, current_user: User) -> CriteriaCategory:
        """Deactivate every criterion of the category, then the category, in one transaction."""
        category = self._get(category_id)
        for criterion in category.criteria:
            if criterion.is_active:
                criterion.is_active = False
        category.is_active = False
        self.commit()
        self.log_info(
            f"Criteria category and its criteria cascade deactivated: ID {category_id} by user {current_user.id}"
        )
        return category

    def delete_category(self, category_id: int, current_user: User) -> None:
        category = self._get(category_id)
        count = len(category.criteria)
        if count:
            raise ConflictError(
                f"Cannot permanently delete criteria category. Category has {count} criteria. "
                "Consider using cascade deactivation instead."
            )
        self.db.delete(category)
        self.commit()
        self.log_warning(f"Criteria category permanently deleted: ID {category_id} by user {current_user.id}")

    def rebalance_weights(self, items: List[RebalanceWeightItem], current_user: User) -> WeightValidation:
        """
        Replace the weights of all active categories at once.

        The items must name every active category exactly once and nothing
        else; the new weights must total 100. Nothing is written otherwise.
        """
        if not items:
            raise ValidationError("At least one category weight is required")

        submitted = [i.category_id for i in items]
        if len(set(submitted)) != len(submitted):
            raise ValidationError("Each category may appear only once in a rebalance")

        active = {
            c.id: c
            for c in self.db.query(CriteriaCategory).filter(CriteriaCategory.is_active == True).all()  # noqa: E712
        }
        unknown = sorted(set(submitted) - set(active))
        missing = sorted(set(active) - set(submitted))
        if unknown or missing:
            raise ValidationError(
                "Rebalance must cover exactly the active categories",
                details={"not_active": unknown, "missing": missing},
            )

        total = sum((i.weight for i in items), Decimal("0"))
        if abs(total - 100) > Decimal(str(settings.scoring.weight_tolerance)):
            raise ValidationError(f"Total weights must equal 100%. Provided total: {total}%")

        for item in items:
            active[item.category_id].weight = item.weight
        result = validate_weights(active.values())
        if not result.is_valid:
            self.db.rollback()
            raise ValidationError("; ".join(result.errors))
        self.commit()

        self.log_info(f"Criteria category weights rebalanced by user {current_user.id}")
        return self.validate_weights()

    def validate_weights(self) -> WeightValidation:
        categories = self.db.query(CriteriaCategory).filter(CriteriaCategory.is_active == True).all()  # noqa: E712
        return validate_weights(categories)

    def list_categories(self, current_user: User, include_inactive: bool = False) -> List[CriteriaCategory]:
        query = self.db.query(CriteriaCategory)
        if not (include_inactive and current_user.is_admin):
            query = query.filter(CriteriaCategory.is_active == True)  # noqa: E712
        return query.order_by(CriteriaCategory.name).all()

    def get_category(self, category_id: int, current_user: User) -> CriteriaCategory:
        category = self._get(category_id)
        if not category.is_active and not current_user.is_admin:
            raise NotFoundError("Criteria category", category_id)
        return category

    def get_category_with_criteria(self, category_id: int, current_user: User) -> CriteriaCategoryWithCriteria:
        category = (
            self.db.query(CriteriaCategory)
            .options(selectinload(CriteriaCategory.criteria))
            .filter(CriteriaCategory.id == category_id)
            .first()
        )
        if not category or (not category.is_active and not current_user.is_admin):
            raise NotFoundError("Criteria category", category_id)

        criteria = category.criteria
        if not current_user.is_admin:
            criteria = [c for c in criteria if c.is_active]

        return CriteriaCategoryWithCriteria(
            id=category.id,
            name=category.name,
            description=category.description,
            weight=category.weight,
            is_active=category.is_active,
            created_date=category.created_date,
            updated_date=category.updated_date,
            criteria_count=len(criteria),
            criteria=[CriteriaSummary.model_validate(c) for c in criteria],
        )
