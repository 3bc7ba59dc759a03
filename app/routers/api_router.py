from fastapi import APIRouter
from app.routers import (
    auth, users, roles, departments, teams, criteria_categories, criteria,
    evaluations, notifications, analytics, bulk
)

# Centralized API router hub
# Routers are aggregated here and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(users.router, tags=["Users"])
api_router.include_router(roles.router, tags=["Roles"])
api_router.include_router(departments.router, tags=["Departments"])
api_router.include_router(teams.router, tags=["Teams"])
api_router.include_router(criteria_categories.router, tags=["Criteria Categories"])
api_router.include_router(criteria.router, tags=["Criteria"])
api_router.include_router(evaluations.router, tags=["Evaluations"])
api_router.include_router(notifications.router, tags=["Notifications"])
api_router.include_router(analytics.router, tags=["Analytics"])
api_router.include_router(bulk.router, tags=["Bulk Operations"])
