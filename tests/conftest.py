import pytest
import os
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"

from app.database import Base, get_db
from app.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
TEST_PASSWORD = "Password123!"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite needs explicit BEGIN for SAVEPOINT based test isolation
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Session bound to an outer transaction that is rolled back after the test.
    Commits and rollbacks inside services only touch a SAVEPOINT.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="session")
def password_hash():
    from app.services import auth as auth_service
    return auth_service.get_password_hash(TEST_PASSWORD)


@pytest.fixture(scope="function")
def roles(db_session):
    """System roles plus one job role used for role-specific criteria."""
    from app.core.init_system import ensure_system_roles
    from app.models.user import Role

    seeded = ensure_system_roles(db_session)
    developer = Role(name="Developer", description="Software developer", is_active=True)
    db_session.add(developer)
    db_session.commit()
    seeded["Developer"] = developer
    return seeded


@pytest.fixture(scope="function")
def departments(db_session):
    from app.models.department import Department

    engineering = Department(name="Engineering", is_active=True)
    sales = Department(name="Sales", is_active=True)
    db_session.add_all([engineering, sales])
    db_session.commit()
    return {"engineering": engineering, "sales": sales}


@pytest.fixture(scope="function")
def make_user(db_session, roles, password_hash):
    """Factory: make_user("ann@company.com", ["Evaluator"], department_id=...)."""
    from app.models.user import RoleAssignment, User

    def _make_user(email, role_names, department_id=None, first_name="Test", last_name=None, is_active=True):
        user = User(
            first_name=first_name,
            last_name=last_name or email.split("@")[0].capitalize(),
            email=email,
            hashed_password=password_hash,
            department_id=department_id,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.flush()
        for name in role_names:
            db_session.add(RoleAssignment(user_id=user.id, role_id=roles[name].id, is_active=True))
        db_session.commit()
        return user

    return _make_user


@pytest.fixture(scope="function")
def admin_user(make_user):
    return make_user("admin@company.com", ["Admin"], first_name="System", last_name="Admin")


@pytest.fixture(scope="function")
def manager_user(make_user, departments):
    return make_user("manager@company.com", ["Manager"], departments["engineering"].id, "Maria", "Manager")


@pytest.fixture(scope="function")
def sales_manager(make_user, departments):
    return make_user("sales.manager@company.com", ["Manager"], departments["sales"].id, "Sam", "Seller")


@pytest.fixture(scope="function")
def evaluator_user(make_user, departments):
    return make_user("evaluator@company.com", ["Evaluator"], departments["engineering"].id, "Eve", "Evaluator")


@pytest.fixture(scope="function")
def employee_user(make_user, departments):
    return make_user(
        "employee@company.com", ["Employee", "Developer"], departments["engineering"].id, "Erin", "Employee"
    )


@pytest.fixture(scope="function")
def assignment(db_session, evaluator_user, employee_user):
    """Evaluator is assigned to evaluate the employee through a team."""
    from app.models.team import EvaluatorAssignment, Team

    team = Team(name="Platform")
    db_session.add(team)
    db_session.flush()
    link = EvaluatorAssignment(
        team_id=team.id, evaluator_id=evaluator_user.id, employee_id=employee_user.id, is_active=True
    )
    db_session.add(link)
    db_session.commit()
    return link


@pytest.fixture(scope="function")
def criteria_setup(db_session):
    """Technical (60): two criteria, Communication (40): one criterion."""
    from app.models.criteria import Criteria, CriteriaCategory

    technical = CriteriaCategory(name="Technical", weight=Decimal("60"), is_active=True)
    communication = CriteriaCategory(name="Communication", weight=Decimal("40"), is_active=True)
    db_session.add_all([technical, communication])
    db_session.flush()

    code_quality = Criteria(category_id=technical.id, name="Code Quality", base_description="Clean code", is_active=True)
    problem_solving = Criteria(category_id=technical.id, name="Problem Solving", is_active=True)
    clarity = Criteria(category_id=communication.id, name="Clarity", is_active=True)
    db_session.add_all([code_quality, problem_solving, clarity])
    db_session.commit()
    return {
        "technical": technical,
        "communication": communication,
        "code_quality": code_quality,
        "problem_solving": problem_solving,
        "clarity": clarity,
    }


@pytest.fixture(scope="function")
def make_evaluation(db_session, evaluator_user, employee_user):
    """Factory for evaluations inserted directly, bypassing the service."""
    from app.models.evaluation import Evaluation, EvaluationStatus

    def _make_evaluation(end_date=None, status=EvaluationStatus.PENDING, evaluator=None, employee=None, period="2026-Q4"):
        end_date = end_date or date.today() + timedelta(days=30)
        evaluation = Evaluation(
            evaluator_id=(evaluator or evaluator_user).id,
            employee_id=(employee or employee_user).id,
            period=period,
            start_date=end_date - timedelta(days=90),
            end_date=end_date,
            status=status.value,
            total_score=Decimal("0"),
            is_active=True,
        )
        db_session.add(evaluation)
        db_session.commit()
        return evaluation

    return _make_evaluation


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens for a user."""
    from app.services.auth import create_access_token

    def _get_token(user):
        return create_access_token(data={
            "sub": user.email,
            "user_id": user.id,
            "roles": user.roles,
        })
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _auth_headers


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
