from fastapi import APIRouter

from .commerce import router as commerce_router
from .consultants import router as consultants_router
from .jobs import router as jobs_router
from .logs import router as logs_router
from .settings import router as settings_router
from .users import router as users_router


admin_router = APIRouter(prefix="/admin")
admin_router.include_router(users_router, prefix="/users", tags=["admin_users"])
admin_router.include_router(commerce_router, tags=["admin_commerce"])
admin_router.include_router(logs_router, prefix="/logs", tags=["admin_logs"])
admin_router.include_router(jobs_router, prefix="/jobs", tags=["admin_jobs"])
admin_router.include_router(
    consultants_router, prefix="/consultants", tags=["admin_consultants"]
)
admin_router.include_router(settings_router, prefix="/settings", tags=["admin_settings"])
