from fastapi import APIRouter
from .endpoints.auth import router as auth
from .endpoints.users import router as users
from .endpoints.content import router as content
from .endpoints.trends import router as trends
from .endpoints.scripts import router as scripts
from .endpoints.ideas import router as ideas
from .endpoints.calendar import router as calendar
from .endpoints.seo import router as seo
from .endpoints.insights import router as insights

api_router = APIRouter()
api_router.include_router(auth, prefix="/auth", tags=["auth"])
api_router.include_router(users, prefix="/users", tags=["users"])
api_router.include_router(content, prefix="/content", tags=["content"])
api_router.include_router(trends, prefix="/trends", tags=["trends"])
api_router.include_router(scripts, prefix="/scripts", tags=["scripts"])
api_router.include_router(ideas, prefix="/ideas", tags=["ideas"])
api_router.include_router(calendar, prefix="/calendar", tags=["calendar"])
api_router.include_router(seo, prefix="/seo", tags=["seo"])
api_router.include_router(insights, prefix="/insights", tags=["insights"])
