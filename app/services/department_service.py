from typing import List

from sqlalchemy import func

from app.core.exceptions import ConflictError, NotFoundError
from app.models.department import Department
from app.models.evaluation import Evaluation, EvaluationStatus
from app.models.user import User
from app.schemas.department import DepartmentCreate, DepartmentStats, DepartmentUpdate
from app.services.base import BaseService


class DepartmentService(BaseService):

    def _get(self, department_id: int) -> Department:
        department = self.db.query(Department).filter(Department.id == department_id).first()
        if not department:
            raise NotFoundError("Department", department_id)
        return department

    def _check_name(self, name: str, exclude_id: int | None = None) -> None:
        query = self.db.query(Department).filter(func.lower(Department.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Department.id != exclude_id)
        if query.first():
            raise ConflictError(f"Department '{name}' already exists")

    def list_departments(self, include_inactive: bool = False) -> List[Department]:
        query = self.db.query(Department)
        if not include_inactive:
            query = query.filter(Department.is_active == True)  # noqa: E712
        return query.order_by(Department.name).all()

    def get_department(self, department_id: int) -> Department:
        return self._get(department_id)

    def create_department(self, data: DepartmentCreate) -> Department:
        self._check_name(data.name)
        department = Department(name=data.name, description=data.description, is_active=True)
        self.db.add(department)
        self.commit()
        self.db.refresh(department)
        self.log_info(f"Department created: {department.name}")
        return department

    def update_department(self, department_id: int, data: DepartmentUpdate) -> Department:
        department = self._get(department_id)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            self._check_name(changes["name"], exclude_id=department_id)
        for field, value in changes.items():
            setattr(department, field, value)
        self.commit()
        self.db.refresh(department)
        return department

    def delete_department(self, department_id: int) -> None:
        department = self._get(department_id)
        user_count = self.db.query(User).filter(User.department_id == department_id).count()
        if user_count:
            raise ConflictError(
                f"Cannot permanently delete department. Department has {user_count} users. "
                "Consider deactivating it instead."
            )
        self.db.delete(department)
        self.commit()
        self.log_warning(f"Department permanently deleted: ID {department_id}")

    def get_stats(self, department_id: int) -> DepartmentStats:
        department = self._get(department_id)
        user_count = (
            self.db.query(User)
            .filter(User.department_id == department_id, User.is_active == True)  # noqa: E712
            .count()
        )

        evaluations = (
            self.db.query(Evaluation)
            .join(User, Evaluation.employee_id == User.id)
            .filter(User.department_id == department_id, Evaluation.is_active == True)  # noqa: E712
            .all()
        )
        by_status = {s.value: 0 for s in EvaluationStatus}
        for e in evaluations:
            by_status[e.status] = by_status.get(e.status, 0) + 1

        finished = [
            float(e.total_score)
            for e in evaluations
            if e.status in (EvaluationStatus.COMPLETED.value, EvaluationStatus.APPROVED.value) and e.total_score
        ]
        return DepartmentStats(
            department_id=department.id,
            department_name=department.name,
            user_count=user_count,
            evaluations_by_status=by_status,
            average_completed_score=round(sum(finished) / len(finished), 2) if finished else 0.0,
        )
