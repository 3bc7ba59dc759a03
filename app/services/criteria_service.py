from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.criteria import Criteria, CriteriaCategory, RoleCriteriaDescription
from app.models.evaluation import Evaluation, EvaluationScore, EvaluationStatus
from app.models.user import Role, User
from app.schemas.criteria import (
    CriteriaCreate,
    CriteriaUpdate,
    CriteriaWithRoleDescription,
    RoleDescriptionCreate,
    RoleDescriptionUpdate,
)
from app.services.base import BaseService
from app.services.scoring import applicable_criteria


class CriteriaService(BaseService):
    """Criteria and their role-specific descriptions."""

    def _get(self, criteria_id: int) -> Criteria:
        criteria = (
            self.db.query(Criteria)
            .options(selectinload(Criteria.role_descriptions))
            .filter(Criteria.id == criteria_id)
            .first()
        )
        if not criteria:
            raise NotFoundError("Criteria", criteria_id)
        return criteria

    def _require_category(self, category_id: int) -> CriteriaCategory:
        category = self.db.query(CriteriaCategory).filter(CriteriaCategory.id == category_id).first()
        if not category:
            raise ValidationError("Category not found")
        return category

    def create_criteria(self, data: CriteriaCreate, current_user: User) -> Criteria:
        self._require_category(data.category_id)
        criteria = Criteria(
            category_id=data.category_id,
            name=data.name,
            base_description=data.base_description,
            is_active=True,
        )
        self.db.add(criteria)
        self.commit()
        self.db.refresh(criteria)
        self.log_info(f"Criteria created: {criteria.name} in category {criteria.category_id} by user {current_user.id}")
        return criteria

    def update_criteria(self, criteria_id: int, data: CriteriaUpdate, current_user: User) -> Criteria:
        criteria = self._get(criteria_id)
        changes = data.model_dump(exclude_unset=True)
        if "category_id" in changes:
            self._require_category(changes["category_id"])
        for field, value in changes.items():
            setattr(criteria, field, value)
        self.commit()
        self.db.refresh(criteria)
        self.log_info(f"Criteria {criteria_id} updated by user {current_user.id}")
        return criteria

    def deactivate_criteria(self, criteria_id: int, current_user: User) -> Criteria:
        """
        Refused while an open (Draft or Pending) evaluation holds an active
        score for the criterion.
        """
        criteria = self._get(criteria_id)
        in_use = (
            self.db.query(EvaluationScore)
            .join(Evaluation, EvaluationScore.evaluation_id == Evaluation.id)
            .filter(
                EvaluationScore.criteria_id == criteria_id,
                EvaluationScore.is_active == True,  # noqa: E712
                Evaluation.status.in_([EvaluationStatus.DRAFT.value, EvaluationStatus.PENDING.value]),
            )
            .count()
        )
        if in_use:
            raise ConflictError(
                "Cannot deactivate criteria. Criteria is being used in active evaluations. "
                "Complete or deactivate related evaluations first."
            )
        criteria.is_active = False
        self.commit()
        self.log_info(f"Criteria deactivated: ID {criteria_id} by user {current_user.id}")
        return criteria

    def reactivate_criteria(self, criteria_id: int, current_user: User) -> Criteria:
        criteria = self._get(criteria_id)
        criteria.is_active = True
        self.commit()
        self.log_info(f"Criteria reactivated: ID {criteria_id} by user {current_user.id}")
        return criteria

    def delete_criteria(self, criteria_id: int, current_user: User) -> None:
        criteria = self._get(criteria_id)
        has_scores = self.db.query(EvaluationScore).filter(EvaluationScore.criteria_id == criteria_id).count()
        if has_scores:
            raise ConflictError(
                "Cannot permanently delete criteria. Criteria has evaluation scores. "
                "Consider using deactivation instead."
            )
        self.db.delete(criteria)
        self.commit()
        self.log_warning(f"Criteria permanently deleted: ID {criteria_id} by user {current_user.id}")

    def list_criteria(self, current_user: User, category_id: int | None = None) -> List[Criteria]:
        query = self.db.query(Criteria).options(selectinload(Criteria.role_descriptions))
        if category_id is not None:
            query = query.filter(Criteria.category_id == category_id)
        if not current_user.is_admin:
            query = query.filter(Criteria.is_active == True)  # noqa: E712
        return query.order_by(Criteria.category_id, Criteria.name).all()

    def get_criteria(self, criteria_id: int, current_user: User) -> Criteria:
        criteria = self._get(criteria_id)
        if not criteria.is_active and not current_user.is_admin:
            raise NotFoundError("Criteria", criteria_id)
        return criteria

    def get_criteria_for_role(self, role_id: int) -> List[Criteria]:
        """Criteria that would appear on the evaluation form of a holder of this role."""
        if not self.db.query(Role).filter(Role.id == role_id).first():
            raise NotFoundError("Role", role_id)
        return applicable_criteria(self.db, {role_id})

    def get_criteria_with_role_description(self, criteria_id: int, role_id: int) -> CriteriaWithRoleDescription:
        criteria = self._get(criteria_id)
        role_description = next((rd for rd in criteria.role_descriptions if rd.role_id == role_id), None)
        category = criteria.category
        return CriteriaWithRoleDescription(
            id=criteria.id,
            name=criteria.name,
            category_name=category.name if category else "",
            category_weight=category.weight if category else 0,
            base_description=criteria.base_description,
            role_description=role_description.description if role_description else None,
            role_example=role_description.example if role_description else None,
            is_active=criteria.is_active,
        )

    # --- Role descriptions ---

    def add_role_description(self, criteria_id: int, data: RoleDescriptionCreate, current_user: User) -> RoleCriteriaDescription:
        self._get(criteria_id)
        if not self.db.query(Role).filter(Role.id == data.role_id).first():
            raise ValidationError("Role not found")

        description = RoleCriteriaDescription(
            criteria_id=criteria_id,
            role_id=data.role_id,
            description=data.description,
            example=data.example,
        )
        self.db.add(description)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(f"Criteria {criteria_id} already has a description for role {data.role_id}")
        self.db.refresh(description)
        self.log_info(f"Role description added: criteria {criteria_id}, role {data.role_id} by user {current_user.id}")
        return description

    def update_role_description(self, description_id: int, data: RoleDescriptionUpdate, current_user: User) -> RoleCriteriaDescription:
        description = self.db.query(RoleCriteriaDescription).filter(RoleCriteriaDescription.id == description_id).first()
        if not description:
            raise NotFoundError("Role description", description_id)
        description.description = data.description
        description.example = data.example
        self.commit()
        self.db.refresh(description)
        self.log_info(f"Role description {description_id} updated by user {current_user.id}")
        return description

    def delete_role_description(self, description_id: int, current_user: User) -> None:
        description = self.db.query(RoleCriteriaDescription).filter(RoleCriteriaDescription.id == description_id).first()
        if not description:
            raise NotFoundError("Role description", description_id)
        self.db.delete(description)
        self.commit()
        self.log_info(f"Role description {description_id} deleted by user {current_user.id}")
