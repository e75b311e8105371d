from fastapi import APIRouter

from .accounts import router as accounts_router
from .admin import admin_router
from .analyses import router as analyses_router
from .commerce import router as commerce_router
from .consultant_chat import router as consultant_chat_router
from .cookie_consent import router as cookie_consent_router
from .cv_chat import router as cv_chat_router
from .cvs import router as cvs_router
from .jobs import router as jobs_router
from .plans import router as plans_router
from .usage import router as usage_router


api_router = APIRouter()
api_router.include_router(accounts_router)
api_router.include_router(plans_router)
api_router.include_router(commerce_router)
api_router.include_router(analyses_router)
api_router.include_router(cv_chat_router)
api_router.include_router(cvs_router)
api_router.include_router(jobs_router)
api_router.include_router(consultant_chat_router)
api_router.include_router(cookie_consent_router)
api_router.include_router(usage_router)
api_router.include_router(admin_router)
