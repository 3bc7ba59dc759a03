from fastapi import status


def test_admin_creates_department(client, admin_user, auth_headers):
    headers = auth_headers(admin_user)
    response = client.post("/api/departments/", json={"name": "Finance", "description": "Money"}, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["name"] == "Finance"

    duplicate = client.post("/api/departments/", json={"name": "finance"}, headers=headers)
    assert duplicate.status_code == status.HTTP_409_CONFLICT


def test_department_with_users_cannot_be_deleted(client, admin_user, employee_user, departments, auth_headers):
    response = client.delete(f"/api/departments/{departments['engineering'].id}", headers=auth_headers(admin_user))
    assert response.status_code == status.HTTP_409_CONFLICT

    response = client.delete(f"/api/departments/{departments['sales'].id}", headers=auth_headers(admin_user))
    assert response.status_code == status.HTTP_204_NO_CONTENT


def test_department_user_count(client, employee_user, departments, auth_headers):
    response = client.get(f"/api/departments/{departments['engineering'].id}", headers=auth_headers(employee_user))
    assert response.status_code == 200
    assert response.json()["user_count"] == 1


def test_department_stats_scoped_to_own_department(
    client, manager_user, employee_user, departments, make_evaluation, auth_headers
):
    make_evaluation()
    headers = auth_headers(manager_user)

    response = client.get(f"/api/departments/{departments['engineering'].id}/stats", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["evaluations_by_status"]["Pending"] == 1
    assert data["user_count"] == 3

    response = client.get(f"/api/departments/{departments['sales'].id}/stats", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_manager_lists_only_own_department(client, manager_user, employee_user, sales_manager, auth_headers):
    response = client.get("/api/users/", headers=auth_headers(manager_user))
    assert response.status_code == 200
    emails = {u["email"] for u in response.json()}
    assert employee_user.email in emails
    assert sales_manager.email not in emails


def test_team_assignment_lifecycle(client, admin_user, evaluator_user, employee_user, auth_headers):
    headers = auth_headers(admin_user)
    team = client.post("/api/teams/", json={"name": "Payments"}, headers=headers).json()

    response = client.post(
        f"/api/teams/{team['id']}/assignments",
        json={"evaluator_id": evaluator_user.id, "employee_id": employee_user.id},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assignment_id = response.json()["id"]

    again = client.post(
        f"/api/teams/{team['id']}/assignments",
        json={"evaluator_id": evaluator_user.id, "employee_id": employee_user.id},
        headers=headers,
    )
    assert again.status_code == status.HTTP_409_CONFLICT

    blocked = client.delete(f"/api/teams/{team['id']}", headers=headers)
    assert blocked.status_code == status.HTTP_409_CONFLICT

    detail = client.get(f"/api/teams/{team['id']}", headers=headers).json()
    assert [a["id"] for a in detail["assignments"]] == [assignment_id]

    removed = client.delete(f"/api/teams/{team['id']}/assignments/{assignment_id}", headers=headers)
    assert removed.status_code == status.HTTP_204_NO_CONTENT
    assert client.delete(f"/api/teams/{team['id']}", headers=headers).status_code == status.HTTP_204_NO_CONTENT


def test_assignment_requires_evaluator_role(client, admin_user, manager_user, employee_user, auth_headers):
    headers = auth_headers(admin_user)
    team = client.post("/api/teams/", json={"name": "Growth"}, headers=headers).json()

    response = client.post(
        f"/api/teams/{team['id']}/assignments",
        json={"evaluator_id": manager_user.id, "employee_id": employee_user.id},
        headers=headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_role_assignment_changes_access(client, admin_user, employee_user, auth_headers):
    headers = auth_headers(admin_user)
    response = client.post(
        "/api/roles/assign", json={"user_id": employee_user.id, "role_name": "Manager"}, headers=headers
    )
    assert response.status_code == 200

    response = client.get("/api/users/", headers=auth_headers(employee_user))
    assert response.status_code == 200

    client.post("/api/roles/unassign", json={"user_id": employee_user.id, "role_name": "Manager"}, headers=headers)
    response = client.get("/api/users/", headers=auth_headers(employee_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN
