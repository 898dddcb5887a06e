import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from minglr.core.config import settings
from minglr.core.errors import MinglrError
from minglr.core.supabase import get_store
from minglr.services.activity_service import ActivityService
from minglr.api.v1.endpoints import activities, auth, follows, groups, notifications, polls, posts, users

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.seed_activities:
        try:
            await ActivityService(await get_store()).seed_activities_if_needed()
        except MinglrError as e:
            logger.warning("Skipping activity seeding: %s", e.detail)
    yield

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(MinglrError)
async def minglr_error_handler(request: Request, exc: MinglrError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

# Include routers
app.include_router(auth.router, prefix="/api/v1/auth", tags=["authentication"])
app.include_router(users.router, prefix="/api/v1/users", tags=["users"])
app.include_router(follows.router, prefix="/api/v1/follows", tags=["follows"])
app.include_router(activities.router, prefix="/api/v1/activities", tags=["activities"])
app.include_router(groups.router, prefix="/api/v1/groups", tags=["groups"])
app.include_router(polls.router, prefix="/api/v1/polls", tags=["polls"])
app.include_router(posts.router, prefix="/api/v1/posts", tags=["posts"])
app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["notifications"])

@app.get("/")
async def root():
    return {"message": settings.app_name, "version": "1.0.0"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}
