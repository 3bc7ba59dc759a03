"""
Bulk evaluation creation and evaluator assignment.

Every item goes through the same service call as its single-item endpoint,
so the same rules apply. Items are processed one by one: a rejected item is
reported and the rest carry on.
"""
from typing import Callable, List, Sequence

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import AppException
from app.models.user import User
from app.schemas.bulk import BulkAssignmentItem, BulkOperationResult
from app.schemas.evaluation import EvaluationCreate
from app.schemas.team import EvaluatorAssignmentCreate
from app.services.base import BaseService
from app.services.evaluation_service import EvaluationService
from app.services.team_service import TeamService


class BulkOperationService(BaseService):

    def _run(self, items: Sequence, action: Callable, describe: Callable, operation: str, user: User):
        created: List[int] = []
        errors: List[str] = []
        for index, item in enumerate(items):
            try:
                created.append(action(item).id)
            except AppException as e:
                errors.append(f"Item {index} ({describe(item)}): {e.message}")
            except SQLAlchemyError as e:
                self.db.rollback()
                errors.append(f"Item {index} ({describe(item)}): {e.__class__.__name__}")
                self.log_error(f"Bulk {operation} item {index} failed: {e}", exc_info=True)

        self.log_info(f"Bulk {operation} by user {user.id}: {len(created)}/{len(items)} succeeded")
        return BulkOperationResult(
            success=bool(created),
            total_items=len(items),
            successful_items=len(created),
            failed_items=len(items) - len(created),
            created_ids=created,
            errors=errors,
        )

    def create_evaluations(self, items: List[EvaluationCreate], current_user: User) -> BulkOperationResult:
        evaluations = EvaluationService(self.db)
        return self._run(
            items,
            lambda item: evaluations.create_evaluation(item, current_user),
            lambda item: f"employee {item.employee_id}",
            "evaluation creation",
            current_user,
        )

    def assign_evaluators(self, items: List[BulkAssignmentItem], current_user: User) -> BulkOperationResult:
        teams = TeamService(self.db)
        return self._run(
            items,
            lambda item: teams.assign(
                item.team_id,
                EvaluatorAssignmentCreate(evaluator_id=item.evaluator_id, employee_id=item.employee_id),
            ),
            lambda item: f"evaluator {item.evaluator_id} -> employee {item.employee_id}",
            "evaluator assignment",
            current_user,
        )
