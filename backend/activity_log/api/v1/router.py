from fastapi import APIRouter

from activity_log.api.v1.endpoints import activities, employees, feedbacks, health

api_router = APIRouter(prefix="/api")
api_router.include_router(health.router)
api_router.include_router(employees.router)
api_router.include_router(activities.router)
api_router.include_router(feedbacks.router)
