import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from config import settings
from errors import WorkoutStateError
from exercises_api import router as exercises_router
from logs_api import router as logs_router
from onboarding import router as profile_router
from routines_api import router as routines_router
from workouts_api import router as session_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="SoloTrain Server", version="1.0.0")


@app.middleware("http")
async def log_internal_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except HTTPException as e:
        if e.status_code == 500:
            logger.error(
                "Unhandled exception during request: %s %s. Error: %s",
                request.method,
                request.url,
                e.detail,
            )
        raise


@app.exception_handler(WorkoutStateError)
async def workout_state_error_handler(request: Request, exc: WorkoutStateError):
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.kind.value)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(profile_router)
app.include_router(routines_router)
app.include_router(session_router)
app.include_router(logs_router)
app.include_router(exercises_router)


@app.get("/")
async def root():
    return {"message": "Welcome to SoloTrain Server"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
