from fastapi import APIRouter, Security

from api.routers.api_v1.endpoints import admin, credits, history, projects, stats, validation
from api.utils.security import get_api_key, require_admin_key


api_router = APIRouter(dependencies=[Security(get_api_key)])

api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(credits.router, prefix="/credits", tags=["Credits"])
api_router.include_router(stats.router, prefix="/stats", tags=["Stats"])
api_router.include_router(validation.router, prefix="/validation", tags=["Validation"])
api_router.include_router(history.router, prefix="/history", tags=["History"])

# Contract owner operations (admin API key only)
api_router.include_router(
    admin.router, prefix="/admin", tags=["Admin"], dependencies=[Security(require_admin_key)]
)
