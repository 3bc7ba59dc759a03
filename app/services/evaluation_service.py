"""
Evaluation Service Layer

Owns the evaluation lifecycle:
- creation by an admin or an assigned evaluator
- score upserts with synchronous total recalculation
- the completeness gate on Pending -> Completed
- comments on individual scores
- scoped listings and dashboard counts

Status progression is Draft -> Pending -> Completed -> Approved. The first
recorded score moves a Draft to Pending. An admin may reopen a Completed
evaluation back to Pending; until then its scores and comments are frozen.
"""
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import aliased, joinedload, selectinload

from app.core.config import settings
from app.core.exceptions import (
    AccessDeniedError,
    IncompleteEvaluationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models.criteria import Criteria
from app.models.evaluation import Comment, Evaluation, EvaluationScore, EvaluationStatus
from app.models.team import EvaluatorAssignment
from app.models.user import SystemRole, User
from app.schemas.evaluation import (
    CommentEdit,
    CommentResponse,
    CriteriaWithScore,
    EvaluationCreate,
    EvaluationDashboard,
    EvaluationForm,
    EvaluationResponse,
    EvaluationSummary,
    EvaluationUpdate,
    ScoreUpsert,
)
from app.services.base import BaseService
from app.services.notification import NotificationService
from app.services.scoring import (
    applicable_criteria,
    calculate_total_score,
    check_score_bounds,
    missing_criteria,
)

# target status -> statuses it may be entered from
ALLOWED_TRANSITIONS: Dict[EvaluationStatus, set] = {
    EvaluationStatus.PENDING: {EvaluationStatus.DRAFT, EvaluationStatus.COMPLETED},
    EvaluationStatus.COMPLETED: {EvaluationStatus.PENDING},
    EvaluationStatus.APPROVED: {EvaluationStatus.COMPLETED},
    EvaluationStatus.DRAFT: set(),
}

OPEN_STATUSES = (EvaluationStatus.DRAFT.value, EvaluationStatus.PENDING.value)


class EvaluationService(BaseService):

    # --- Access ---

    def _scoped_query(self, current_user: User):
        """Evaluations visible to the user: admins all, managers their department, others their own."""
        query = self.db.query(Evaluation).filter(Evaluation.is_active == True)  # noqa: E712
        if current_user.is_admin:
            return query

        own = (Evaluation.evaluator_id == current_user.id) | (Evaluation.employee_id == current_user.id)
        if current_user.has_role(SystemRole.MANAGER) and current_user.department_id is not None:
            employee = aliased(User)
            return query.join(employee, Evaluation.employee_id == employee.id).filter(
                own | (employee.department_id == current_user.department_id)
            )
        return query.filter(own)

    def visible_evaluations(self, current_user: User):
        return self._scoped_query(current_user)

    def _can_view(self, evaluation: Evaluation, current_user: User) -> bool:
        if current_user.is_admin:
            return True
        if current_user.id in (evaluation.evaluator_id, evaluation.employee_id):
            return True
        return (
            current_user.has_role(SystemRole.MANAGER)
            and current_user.department_id is not None
            and evaluation.employee.department_id == current_user.department_id
        )

    def _can_edit(self, evaluation: Evaluation, current_user: User) -> bool:
        return current_user.is_admin or evaluation.evaluator_id == current_user.id

    def get_evaluation(self, evaluation_id: int, current_user: User) -> Evaluation:
        evaluation = (
            self.db.query(Evaluation)
            .options(
                joinedload(Evaluation.employee),
                joinedload(Evaluation.evaluator),
                selectinload(Evaluation.scores).selectinload(EvaluationScore.comments),
            )
            .filter(Evaluation.id == evaluation_id, Evaluation.is_active == True)  # noqa: E712
            .first()
        )
        if not evaluation or not self._can_view(evaluation, current_user):
            raise NotFoundError("Evaluation", evaluation_id)
        return evaluation

    def _get_editable(self, evaluation_id: int, current_user: User) -> Evaluation:
        evaluation = self.get_evaluation(evaluation_id, current_user)
        if not self._can_edit(evaluation, current_user):
            raise AccessDeniedError("Only the assigned evaluator or an administrator can modify this evaluation")
        if evaluation.status not in OPEN_STATUSES:
            raise InvalidTransitionError(
                evaluation.status,
                evaluation.status,
                message=f"Evaluation is {evaluation.status}; reopen it before changing scores or comments",
            )
        return evaluation

    # --- Creation ---

    def create_evaluation(self, data: EvaluationCreate, current_user: User) -> Evaluation:
        if current_user.is_admin:
            evaluator_id = data.evaluator_id or current_user.id
        elif current_user.has_role(SystemRole.EVALUATOR):
            evaluator_id = current_user.id
            can_evaluate = (
                self.db.query(EvaluatorAssignment)
                .filter(
                    EvaluatorAssignment.evaluator_id == current_user.id,
                    EvaluatorAssignment.employee_id == data.employee_id,
                    EvaluatorAssignment.is_active == True,  # noqa: E712
                )
                .first()
            )
            if not can_evaluate:
                raise AccessDeniedError("You cannot evaluate this employee")
        else:
            raise AccessDeniedError("Only evaluators and admins can create evaluations")

        employee = self.db.query(User).filter(User.id == data.employee_id, User.is_active == True).first()  # noqa: E712
        if not employee:
            raise ValidationError("Employee not found or not accessible")
        evaluator = self.db.query(User).filter(User.id == evaluator_id, User.is_active == True).first()  # noqa: E712
        if not evaluator:
            raise ValidationError("Evaluator not found or inactive")
        if evaluator.id == employee.id:
            raise ValidationError("An employee cannot evaluate themselves")

        evaluation = Evaluation(
            evaluator_id=evaluator.id,
            employee_id=employee.id,
            period=data.period,
            start_date=data.start_date,
            end_date=data.end_date,
            general_comments=data.general_comments,
            status=EvaluationStatus.DRAFT.value,
            total_score=Decimal("0"),
        )
        self.db.add(evaluation)
        self.commit()
        self.db.refresh(evaluation)
        self.log_info(f"Evaluation {evaluation.id} created for employee {employee.id} by user {current_user.id}")

        self._notify(NotificationService(self.db).send_evaluation_assigned_notification, evaluation.id)
        return evaluation

    def _notify(self, send, evaluation_id: int):
        # A failed notification never undoes the committed evaluation change
        try:
            send(evaluation_id)
        except Exception as e:
            self.db.rollback()
            self.log_error(f"Notification for evaluation {evaluation_id} failed: {e}", exc_info=True)

    # --- Scores ---

    def _apply_score(self, evaluation: Evaluation, criteria_id: int, value: int) -> EvaluationScore:
        """Insert or update one score row; no commit, no recalculation."""
        if not check_score_bounds(value):
            raise ValidationError(
                f"Score must be between {settings.scoring.min_score} and {settings.scoring.max_score}"
            )

        criteria = self.db.query(Criteria).filter(Criteria.id == criteria_id).first()
        if not criteria or not criteria.is_active or not criteria.category or not criteria.category.is_active:
            raise ValidationError(f"Criteria {criteria_id} not found or inactive")
        if not criteria.applies_to(evaluation.employee.role_ids):
            raise ValidationError(f"Criteria '{criteria.name}' does not apply to this employee")

        score = next((s for s in evaluation.scores if s.criteria_id == criteria_id), None)
        if score is None:
            score = EvaluationScore(criteria_id=criteria.id, criteria=criteria, score=value, is_active=True)
            evaluation.scores.append(score)
        else:
            score.score = value
            score.is_active = True

        if evaluation.status == EvaluationStatus.DRAFT.value:
            evaluation.status = EvaluationStatus.PENDING.value
        return score

    def upsert_score(self, evaluation_id: int, data: ScoreUpsert, current_user: User) -> EvaluationScore:
        evaluation = self._get_editable(evaluation_id, current_user)
        try:
            score = self._apply_score(evaluation, data.criteria_id, data.score)
            calculate_total_score(evaluation)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(score)
        self.log_info(
            f"Score recorded: evaluation {evaluation_id}, criteria {data.criteria_id} = {data.score}; "
            f"total {evaluation.total_score}"
        )
        return score

    def recalculate_total(self, evaluation_id: int, current_user: User) -> Evaluation:
        evaluation = self.get_evaluation(evaluation_id, current_user)
        if evaluation.status in OPEN_STATUSES:
            calculate_total_score(evaluation)
            self.commit()
        return evaluation

    # --- Comments ---

    def _score_for(self, evaluation: Evaluation, criteria_id: int) -> EvaluationScore:
        score = next((s for s in evaluation.scores if s.criteria_id == criteria_id and s.is_active), None)
        if not score:
            raise ValidationError("Score not found for this criteria")
        return score

    def _get_comment(self, comment_id: int, current_user: User) -> Comment:
        comment = (
            self.db.query(Comment)
            .filter(Comment.id == comment_id, Comment.is_active == True)  # noqa: E712
            .first()
        )
        if not comment:
            raise NotFoundError("Comment", comment_id)
        # Visibility and editability come from the owning evaluation
        self._get_editable(comment.score.evaluation_id, current_user)
        return comment

    def add_comment(self, evaluation_id: int, criteria_id: int, description: str, current_user: User) -> Comment:
        evaluation = self._get_editable(evaluation_id, current_user)
        score = self._score_for(evaluation, criteria_id)
        comment = Comment(description=description, is_active=True)
        score.comments.append(comment)
        self.commit()
        self.db.refresh(comment)
        return comment

    def update_comment(self, comment_id: int, description: str, current_user: User) -> Comment:
        comment = self._get_comment(comment_id, current_user)
        comment.description = description
        comment.updated_date = datetime.now(timezone.utc)
        self.commit()
        self.db.refresh(comment)
        return comment

    def delete_comment(self, comment_id: int, current_user: User) -> None:
        comment = self._get_comment(comment_id, current_user)
        comment.is_active = False
        self.commit()

    def get_comments(self, evaluation_id: int, criteria_id: int, current_user: User) -> List[Comment]:
        evaluation = self.get_evaluation(evaluation_id, current_user)
        score = next((s for s in evaluation.scores if s.criteria_id == criteria_id), None)
        if score is None:
            return []
        return [c for c in score.comments if c.is_active]

    # --- Batch update ---

    def update_evaluation(self, evaluation_id: int, data: EvaluationUpdate, current_user: User) -> Evaluation:
        """
        Basic fields, score updates and comment updates applied in one
        transaction; the total is recalculated when any score changed.
        """
        evaluation = self._get_editable(evaluation_id, current_user)
        try:
            basic = data.model_dump(
                exclude_unset=True, include={"period", "start_date", "end_date", "general_comments"}
            )
            for field, value in basic.items():
                setattr(evaluation, field, value)
            if evaluation.end_date < evaluation.start_date:
                raise ValidationError("end_date must not be before start_date")

            for item in data.score_updates:
                self._apply_score(evaluation, item.criteria_id, item.score)

            for edit in data.comment_updates:
                self._apply_comment_edit(evaluation, edit)

            if data.score_updates:
                calculate_total_score(evaluation)

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            self.log_error(f"Error updating evaluation {evaluation_id}: {e}")
            raise

        self.db.refresh(evaluation)
        return evaluation

    def _apply_comment_edit(self, evaluation: Evaluation, edit: CommentEdit) -> None:
        if edit.comment_id:
            comment = next(
                (c for s in evaluation.scores for c in s.comments if c.id == edit.comment_id and c.is_active),
                None,
            )
            if comment is None:
                raise NotFoundError("Comment", edit.comment_id)
            if edit.delete:
                comment.is_active = False
            elif edit.description:
                comment.description = edit.description
            return

        if edit.criteria_id is None or not edit.description:
            raise ValidationError("New comments need criteria_id and description")
        score = self._score_for(evaluation, edit.criteria_id)
        score.comments.append(Comment(description=edit.description, is_active=True))

    # --- Status ---

    def submit_evaluation(self, evaluation_id: int, current_user: User) -> Evaluation:
        """Pending -> Completed, gated on every applicable criterion being scored."""
        evaluation = self.get_evaluation(evaluation_id, current_user)
        if not self._can_edit(evaluation, current_user):
            raise AccessDeniedError("Only evaluators and admins can submit evaluations")
        if evaluation.status != EvaluationStatus.PENDING.value:
            raise InvalidTransitionError(evaluation.status, EvaluationStatus.COMPLETED.value)

        missing = missing_criteria(self.db, evaluation)
        if missing:
            raise IncompleteEvaluationError([c.name for c in missing])

        calculate_total_score(evaluation)
        evaluation.status = EvaluationStatus.COMPLETED.value
        evaluation.completed_date = datetime.now(timezone.utc)
        self.commit()
        self.db.refresh(evaluation)
        self.log_info(f"Evaluation {evaluation_id} completed with total {evaluation.total_score}")

        self._notify(NotificationService(self.db).send_evaluation_completed_notification, evaluation.id)
        return evaluation

    def change_status(self, evaluation_id: int, target: EvaluationStatus, current_user: User) -> Evaluation:
        if target == EvaluationStatus.COMPLETED:
            return self.submit_evaluation(evaluation_id, current_user)

        evaluation = self.get_evaluation(evaluation_id, current_user)
        current = EvaluationStatus(evaluation.status)
        if current not in ALLOWED_TRANSITIONS[target]:
            raise InvalidTransitionError(current.value, target.value)

        if target == EvaluationStatus.PENDING and current == EvaluationStatus.DRAFT:
            if not self._can_edit(evaluation, current_user):
                raise AccessDeniedError()
        elif not current_user.is_admin:
            # Reopen and approve
            raise AccessDeniedError("Only administrators can reopen or approve evaluations")

        if current == EvaluationStatus.COMPLETED and target == EvaluationStatus.PENDING:
            evaluation.completed_date = None

        evaluation.status = target.value
        self.commit()
        self.db.refresh(evaluation)
        self.log_info(f"Evaluation {evaluation_id} moved {current.value} -> {target.value} by user {current_user.id}")
        return evaluation

    def delete_evaluation(self, evaluation_id: int, current_user: User) -> None:
        evaluation = self.db.query(Evaluation).filter(Evaluation.id == evaluation_id).first()
        if not evaluation:
            raise NotFoundError("Evaluation", evaluation_id)
        self.db.delete(evaluation)
        self.commit()
        self.log_info(f"Evaluation deleted: ID {evaluation_id} by user {current_user.id}")

    # --- Read models ---

    def get_form(self, evaluation_id: int, current_user: User) -> EvaluationForm:
        evaluation = self.get_evaluation(evaluation_id, current_user)
        employee = evaluation.employee
        role_ids = employee.role_ids
        scores = {s.criteria_id: s for s in evaluation.scores if s.is_active}

        rows = []
        for criteria in applicable_criteria(self.db, role_ids):
            override = next((rd for rd in criteria.role_descriptions if rd.role_id in role_ids), None)
            score = scores.get(criteria.id)
            rows.append(
                CriteriaWithScore(
                    criteria_id=criteria.id,
                    name=criteria.name,
                    category_id=criteria.category_id,
                    category_name=criteria.category.name,
                    category_weight=criteria.category.weight,
                    description=override.description if override else criteria.base_description,
                    example=override.example if override else None,
                    score_id=score.id if score else None,
                    score=score.score if score else None,
                    comments=[CommentResponse.model_validate(c) for c in score.comments if c.is_active]
                    if score
                    else [],
                )
            )

        return EvaluationForm(
            evaluation=EvaluationResponse.model_validate(evaluation),
            employee_name=employee.full_name,
            evaluator_name=evaluation.evaluator.full_name,
            employee_roles=employee.roles,
            criteria=rows,
            min_score=settings.scoring.min_score,
            max_score=settings.scoring.max_score,
        )

    def get_summary(self, evaluation_id: int, current_user: User) -> EvaluationSummary:
        evaluation = self.get_evaluation(evaluation_id, current_user)
        active_scores = [s for s in evaluation.scores if s.is_active]
        applicable = applicable_criteria(self.db, evaluation.employee.role_ids)
        scored = {s.criteria_id for s in active_scores}
        missing = [c.name for c in applicable if c.id not in scored]
        return EvaluationSummary(
            evaluation_id=evaluation.id,
            status=evaluation.status,
            total_score=evaluation.total_score,
            score_count=len(active_scores),
            applicable_criteria_count=len(applicable),
            comment_count=sum(1 for s in active_scores for c in s.comments if c.is_active),
            is_complete=not missing,
            missing_criteria=missing,
        )

    def list_evaluations(
        self,
        current_user: User,
        status: Optional[EvaluationStatus] = None,
        period: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Evaluation]:
        query = self._scoped_query(current_user)
        if status is not None:
            query = query.filter(Evaluation.status == status.value)
        if period:
            query = query.filter(Evaluation.period == period)
        query = query.order_by(Evaluation.created_date.desc(), Evaluation.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_recent(self, current_user: User, limit: int = 10) -> List[Evaluation]:
        return self.list_evaluations(current_user, limit=limit)

    def get_dashboard(self, current_user: User, today: Optional[date] = None) -> EvaluationDashboard:
        today = today or date.today()
        evaluations = self._scoped_query(current_user).all()

        by_status = Counter(e.status for e in evaluations)
        pending = [e for e in evaluations if e.status == EvaluationStatus.PENDING.value]
        finished_scores = [
            Decimal(str(e.total_score))
            for e in evaluations
            if e.status in (EvaluationStatus.COMPLETED.value, EvaluationStatus.APPROVED.value)
            and e.total_score
            and e.total_score > 0
        ]
        average = float(sum(finished_scores) / len(finished_scores)) if finished_scores else 0.0

        return EvaluationDashboard(
            total=len(evaluations),
            by_status={s.value: by_status.get(s.value, 0) for s in EvaluationStatus},
            overdue=sum(1 for e in pending if e.end_date < today),
            due_this_week=sum(1 for e in pending if today <= e.end_date <= today + timedelta(days=7)),
            average_completed_score=round(average, 2),
            recent=[EvaluationResponse.model_validate(e) for e in self.get_recent(current_user, 5)],
        )
