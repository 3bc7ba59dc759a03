"""Seed a demo department, one user per system role, a team and a valid criteria set.

Run from the project root: python -m scripts.seed_demo
"""
from app.database import SessionLocal, init_db
from app.core.init_system import ensure_system_roles
from app.models.criteria import Criteria, CriteriaCategory
from app.models.department import Department
from app.models.team import EvaluatorAssignment, Team
from app.models.user import RoleAssignment, User
from app.services import auth as auth_service

DEMO_USERS = [
    ("admin@example.com", "Admin123!", "Ada", "Admin", "Admin"),
    ("manager@example.com", "Manager123!", "Max", "Manager", "Manager"),
    ("evaluator@example.com", "Evaluator123!", "Eve", "Evaluator", "Evaluator"),
    ("employee@example.com", "Employee123!", "Emil", "Employee", "Employee"),
]

DEMO_CRITERIA = {
    ("Technical Skills", 60): ["Code Quality", "Problem Solving"],
    ("Communication", 40): ["Clarity", "Collaboration"],
}


def get_or_create_department(db, name):
    department = db.query(Department).filter(Department.name == name).first()
    if department:
        print(f"Department {name} already exists. Skipping.")
        return department
    department = Department(name=name, description="Demo department")
    db.add(department)
    db.flush()
    print(f"Created department -> {name}")
    return department


def create_user(db, roles, department, email, password, first_name, last_name, role_name):
    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        print(f"User {email} already exists. Skipping.")
        return existing_user

    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        hashed_password=auth_service.get_password_hash(password),
        department_id=department.id,
        is_active=True,
    )
    db.add(user)
    db.flush()
    db.add(RoleAssignment(user_id=user.id, role_id=roles[role_name].id, is_active=True))
    print(f"Created {role_name} -> {email}")
    return user


def seed_criteria(db):
    if db.query(CriteriaCategory).count():
        print("Criteria categories already exist. Skipping.")
        return
    for (category_name, weight), criteria_names in DEMO_CRITERIA.items():
        category = CriteriaCategory(name=category_name, weight=weight, is_active=True)
        db.add(category)
        db.flush()
        for criteria_name in criteria_names:
            db.add(Criteria(category_id=category.id, name=criteria_name, is_active=True))
        print(f"Created category {category_name} ({weight}%) with {len(criteria_names)} criteria")


def seed():
    init_db()
    db = SessionLocal()
    try:
        roles = ensure_system_roles(db)
        department = get_or_create_department(db, "Engineering")
        users = {
            role_name: create_user(db, roles, department, email, password, first, last, role_name)
            for email, password, first, last, role_name in DEMO_USERS
        }
        seed_criteria(db)

        team = db.query(Team).filter(Team.name == "Demo Team").first()
        if team is None:
            team = Team(name="Demo Team", description="Evaluator and employee pairing")
            db.add(team)
            db.flush()
            db.add(EvaluatorAssignment(
                team_id=team.id,
                evaluator_id=users["Evaluator"].id,
                employee_id=users["Employee"].id,
                is_active=True,
            ))
            print("Assigned evaluator@example.com -> employee@example.com")

        db.commit()
        print("Demo data ready.")
    except Exception as e:
        db.rollback()
        print(f"Error seeding demo data: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
