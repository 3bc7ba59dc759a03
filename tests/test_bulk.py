from fastapi import status

from app.models.evaluation import Evaluation, EvaluationStatus
from app.models.notification import Notification
from app.models.team import EvaluatorAssignment, Team
from app.schemas.bulk import BulkAssignmentItem
from app.schemas.evaluation import EvaluationCreate
from app.services.bulk_service import BulkOperationService


def _item(employee_id, evaluator_id, period="2026-Q4"):
    return EvaluationCreate(
        employee_id=employee_id,
        evaluator_id=evaluator_id,
        period=period,
        start_date="2026-10-01",
        end_date="2026-12-31",
    )


def test_bulk_create_reports_each_item(db_session, admin_user, evaluator_user, employee_user):
    result = BulkOperationService(db_session).create_evaluations(
        [
            _item(employee_user.id, evaluator_user.id),
            _item(employee_user.id, employee_user.id),
            _item(99999, evaluator_user.id),
        ],
        admin_user,
    )

    assert result.success is True
    assert (result.total_items, result.successful_items, result.failed_items) == (3, 1, 2)
    assert "cannot evaluate themselves" in result.errors[0]
    assert result.errors[1].startswith("Item 2 (employee 99999)")

    created = db_session.query(Evaluation).filter(Evaluation.id == result.created_ids[0]).one()
    assert created.status == EvaluationStatus.DRAFT.value
    assert db_session.query(Notification).filter(Notification.user_id == evaluator_user.id).count() == 1


def test_bulk_assign_skips_invalid_items(db_session, admin_user, evaluator_user, employee_user, manager_user):
    team = Team(name="Payments")
    db_session.add(team)
    db_session.commit()

    result = BulkOperationService(db_session).assign_evaluators(
        [
            BulkAssignmentItem(team_id=team.id, evaluator_id=evaluator_user.id, employee_id=employee_user.id),
            BulkAssignmentItem(team_id=team.id, evaluator_id=evaluator_user.id, employee_id=employee_user.id),
            BulkAssignmentItem(team_id=team.id, evaluator_id=manager_user.id, employee_id=employee_user.id),
            BulkAssignmentItem(team_id=9999, evaluator_id=evaluator_user.id, employee_id=employee_user.id),
        ],
        admin_user,
    )

    assert (result.successful_items, result.failed_items) == (1, 3)
    assert "already assigned" in result.errors[0]
    assert "Evaluator role" in result.errors[1]
    active = db_session.query(EvaluatorAssignment).filter(EvaluatorAssignment.is_active == True).all()  # noqa: E712
    assert [a.id for a in active] == result.created_ids


def test_bulk_endpoints_are_admin_only(client, admin_user, manager_user, evaluator_user, employee_user, auth_headers):
    payload = {
        "evaluations": [
            {
                "employee_id": employee_user.id,
                "evaluator_id": evaluator_user.id,
                "period": "2026-Q4",
                "start_date": "2026-10-01",
                "end_date": "2026-12-31",
            }
        ]
    }

    response = client.post("/api/bulk/evaluations", json=payload, headers=auth_headers(manager_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.post("/api/bulk/evaluations", json=payload, headers=auth_headers(admin_user))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["successful_items"] == 1


def test_empty_bulk_request_is_rejected(client, admin_user, auth_headers):
    response = client.post("/api/bulk/assignments", json={"assignments": []}, headers=auth_headers(admin_user))
    assert response.status_code == 422
