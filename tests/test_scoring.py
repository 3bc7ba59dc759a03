from decimal import Decimal

from app.models.criteria import Criteria, CriteriaCategory
from app.models.evaluation import Evaluation, EvaluationScore
from app.services.scoring import calculate_total_score, check_score_bounds


def _build_evaluation(scores):
    """scores: list of (category, criteria_name, value)."""
    evaluation = Evaluation(total_score=Decimal("0"))
    criteria_by_name = {}
    for category, name, value in scores:
        criteria = criteria_by_name.setdefault(
            name, Criteria(name=name, is_active=True, category=category)
        )
        evaluation.scores.append(EvaluationScore(criteria=criteria, score=value, is_active=True))
    return evaluation


def _categories():
    technical = CriteriaCategory(id=1, name="Technical", weight=Decimal("60"), is_active=True)
    communication = CriteriaCategory(id=2, name="Communication", weight=Decimal("40"), is_active=True)
    return technical, communication


def test_weighted_total_of_category_means():
    technical, communication = _categories()
    evaluation = _build_evaluation([
        (technical, "Code Quality", 4),
        (technical, "Problem Solving", 5),
        (communication, "Clarity", 3),
    ])

    assert calculate_total_score(evaluation) == Decimal("3.90")
    assert evaluation.total_score == Decimal("3.90")


def test_recalculation_is_idempotent():
    technical, communication = _categories()
    evaluation = _build_evaluation([
        (technical, "Code Quality", 2),
        (technical, "Problem Solving", 3),
        (communication, "Clarity", 5),
    ])

    first = calculate_total_score(evaluation)
    second = calculate_total_score(evaluation)
    assert first == second == Decimal("3.50")


def test_unscored_criteria_are_left_out_of_the_mean():
    technical, communication = _categories()
    # Only one of the technical criteria is scored
    evaluation = _build_evaluation([
        (technical, "Code Quality", 5),
        (communication, "Clarity", 5),
    ])
    assert calculate_total_score(evaluation) == Decimal("5.00")


def test_category_without_scores_contributes_nothing():
    technical, _ = _categories()
    evaluation = _build_evaluation([(technical, "Code Quality", 5)])
    assert calculate_total_score(evaluation) == Decimal("3.00")


def test_inactive_scores_and_categories_are_ignored():
    technical, communication = _categories()
    communication.is_active = False
    evaluation = _build_evaluation([
        (technical, "Code Quality", 4),
        (communication, "Clarity", 1),
    ])
    evaluation.scores[0].is_active = True
    assert calculate_total_score(evaluation) == Decimal("2.40")

    evaluation.scores[0].is_active = False
    assert calculate_total_score(evaluation) == Decimal("0.00")


def test_rounding_is_half_up():
    technical = CriteriaCategory(id=1, name="Technical", weight=Decimal("33.33"), is_active=True)
    evaluation = _build_evaluation([(technical, "Code Quality", 5)])
    # 5 * 0.3333 = 1.6665
    assert calculate_total_score(evaluation) == Decimal("1.67")


def test_score_bounds():
    assert check_score_bounds(1)
    assert check_score_bounds(5)
    assert not check_score_bounds(0)
    assert not check_score_bounds(6)
