from decimal import Decimal

import pytest

from app.core.config import settings
from app.core.exceptions import ConflictError, ValidationError
from app.models.criteria import CriteriaCategory
from app.schemas.criteria import CriteriaCategoryCreate, CriteriaCategoryUpdate, RebalanceWeightItem
from app.services.criteria_category_service import CriteriaCategoryService
from app.services.scoring import validate_weights


def _category(name, weight, is_active=True, id=None):
    return CriteriaCategory(id=id, name=name, weight=Decimal(str(weight)), is_active=is_active)


def test_weights_summing_to_100_are_valid():
    result = validate_weights([_category("Technical", 60, id=1), _category("Communication", 40, id=2)])
    assert result.is_valid
    assert result.total_weight == Decimal("100")
    assert result.errors == []


def test_short_total_is_reported():
    result = validate_weights([_category("Technical", 57, id=1), _category("Communication", 40, id=2)])
    assert not result.is_valid
    assert result.errors == ["total weight is 97, expected 100"]
    assert result.remaining_weight == Decimal("3")


def test_inactive_categories_are_ignored():
    result = validate_weights([
        _category("Technical", 60, id=1),
        _category("Communication", 40, id=2),
        _category("Legacy", 25, is_active=False, id=3),
    ])
    assert result.is_valid
    assert [c.name for c in result.categories] == ["Technical", "Communication"]


def test_no_active_categories_is_invalid():
    result = validate_weights([_category("Legacy", 100, is_active=False, id=1)])
    assert not result.is_valid
    assert result.errors == ["no active criteria categories"]


def test_rounded_thirds_are_within_tolerance():
    result = validate_weights([_category(f"Part {i}", "33.33", id=i) for i in range(1, 4)])
    assert result.is_valid
    assert result.total_weight == Decimal("99.99")


def test_just_outside_tolerance_is_invalid():
    result = validate_weights([
        _category("First", "33.33", id=1),
        _category("Second", "33.33", id=2),
        _category("Third", "33.32", id=3),
    ])
    assert not result.is_valid
    assert result.errors == ["total weight is 99.98, expected 100"]


def test_tolerance_comes_from_settings(monkeypatch):
    categories = [
        _category("First", "33.33", id=1),
        _category("Second", "33.33", id=2),
        _category("Third", "33.32", id=3),
    ]
    monkeypatch.setattr(settings.scoring, "weight_tolerance", 0.05)
    assert validate_weights(categories).is_valid

    monkeypatch.setattr(settings.scoring, "weight_tolerance", 0)
    assert not validate_weights([_category(f"Part {i}", "33.33", id=i) for i in range(1, 4)]).is_valid


def test_create_rejects_total_over_100(db_session, admin_user, criteria_setup):
    service = CriteriaCategoryService(db_session)
    with pytest.raises(ValidationError):
        service.create_category(CriteriaCategoryCreate(name="Leadership", weight=Decimal("10")), admin_user)


def test_update_checks_total(db_session, admin_user, criteria_setup):
    service = CriteriaCategoryService(db_session)
    with pytest.raises(ValidationError):
        service.update_category(
            criteria_setup["technical"].id, CriteriaCategoryUpdate(weight=Decimal("70")), admin_user
        )

    service.update_category(criteria_setup["technical"].id, CriteriaCategoryUpdate(weight=Decimal("50")), admin_user)
    result = service.validate_weights()
    assert not result.is_valid
    assert result.errors == ["total weight is 90, expected 100"]


def test_rebalance_requires_total_of_100(db_session, admin_user, criteria_setup):
    service = CriteriaCategoryService(db_session)
    with pytest.raises(ValidationError):
        service.rebalance_weights(
            [
                RebalanceWeightItem(category_id=criteria_setup["technical"].id, weight=Decimal("50")),
                RebalanceWeightItem(category_id=criteria_setup["communication"].id, weight=Decimal("30")),
            ],
            admin_user,
        )


def test_rebalance_applies_new_weights(db_session, admin_user, criteria_setup):
    service = CriteriaCategoryService(db_session)
    result = service.rebalance_weights(
        [
            RebalanceWeightItem(category_id=criteria_setup["technical"].id, weight=Decimal("70")),
            RebalanceWeightItem(category_id=criteria_setup["communication"].id, weight=Decimal("30")),
        ],
        admin_user,
    )
    assert result.is_valid
    db_session.refresh(criteria_setup["technical"])
    assert Decimal(str(criteria_setup["technical"].weight)) == Decimal("70")


def test_reactivation_cannot_push_total_over_100(db_session, admin_user, criteria_setup):
    service = CriteriaCategoryService(db_session)
    technical_id = criteria_setup["technical"].id
    service.deactivate_category(technical_id, admin_user)
    service.create_category(CriteriaCategoryCreate(name="Leadership", weight=Decimal("60")), admin_user)

    with pytest.raises(ValidationError):
        service.reactivate_category(technical_id, admin_user)


def test_delete_blocked_while_category_owns_criteria(db_session, admin_user, criteria_setup):
    service = CriteriaCategoryService(db_session)
    with pytest.raises(ConflictError):
        service.delete_category(criteria_setup["technical"].id, admin_user)


def test_cascade_deactivation(db_session, admin_user, criteria_setup):
    service = CriteriaCategoryService(db_session)
    category = service.cascade_deactivate_category(criteria_setup["communication"].id, admin_user)
    assert category.is_active is False
    assert criteria_setup["clarity"].is_active is False


def test_weights_endpoint(client, employee_user, auth_headers, criteria_setup):
    response = client.get("/api/criteria-categories/validate-weights", headers=auth_headers(employee_user))
    assert response.status_code == 200
    data = response.json()
    assert data["is_valid"] is True
    assert len(data["categories"]) == 2


def test_create_category_endpoint_rejects_over_100(client, admin_user, auth_headers, criteria_setup):
    response = client.post(
        "/api/criteria-categories/",
        json={"name": "Leadership", "weight": "5"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == "VALIDATION_ERROR"


def test_rebalance_must_cover_every_active_category(db_session, admin_user, criteria_setup):
    service = CriteriaCategoryService(db_session)
    with pytest.raises(ValidationError) as exc_info:
        service.rebalance_weights(
            [RebalanceWeightItem(category_id=criteria_setup["technical"].id, weight=Decimal("100"))],
            admin_user,
        )
    assert exc_info.value.details["missing"] == [criteria_setup["communication"].id]

    db_session.refresh(criteria_setup["technical"])
    assert Decimal(str(criteria_setup["technical"].weight)) == Decimal("60")
    assert service.validate_weights().is_valid


def test_rebalance_rejects_inactive_categories(db_session, admin_user, criteria_setup):
    legacy = CriteriaCategory(name="Legacy", weight=Decimal("20"), is_active=False)
    db_session.add(legacy)
    db_session.commit()

    service = CriteriaCategoryService(db_session)
    with pytest.raises(ValidationError) as exc_info:
        service.rebalance_weights(
            [
                RebalanceWeightItem(category_id=criteria_setup["technical"].id, weight=Decimal("50")),
                RebalanceWeightItem(category_id=criteria_setup["communication"].id, weight=Decimal("30")),
                RebalanceWeightItem(category_id=legacy.id, weight=Decimal("20")),
            ],
            admin_user,
        )
    assert exc_info.value.details["not_active"] == [legacy.id]
    assert service.validate_weights().total_weight == Decimal("100")


def test_rebalance_rejects_duplicate_categories(db_session, admin_user, criteria_setup):
    technical_id = criteria_setup["technical"].id
    with pytest.raises(ValidationError):
        CriteriaCategoryService(db_session).rebalance_weights(
            [
                RebalanceWeightItem(category_id=technical_id, weight=Decimal("50")),
                RebalanceWeightItem(category_id=technical_id, weight=Decimal("50")),
            ],
            admin_user,
        )
