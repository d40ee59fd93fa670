from fastapi import APIRouter

from labsite.api.routes import community, health, home, news, publications

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(home.router, prefix="/home", tags=["home"])
api_router.include_router(community.router, prefix="/community", tags=["community"])
api_router.include_router(publications.router, prefix="/publications", tags=["publications"])
api_router.include_router(news.router, prefix="/news", tags=["news"])
