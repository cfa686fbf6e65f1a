# assessment_engine/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import config
from .core.database import get_db_manager, close_db_manager
from .core.ai_services import get_ai_service, close_ai_service
from .core.exceptions import (
    AssessmentError, GenerationError, MalformedResponse, NotFound,
    ServiceOverloaded, StateConflict, ValidationError
)
from .api.routes import router

# Setup logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Most specific class first
ERROR_RESPONSES = [
    (ServiceOverloaded, 503, "service_overloaded"),
    (GenerationError, 502, "generation_error"),
    (MalformedResponse, 502, "malformed_response"),
    (NotFound, 404, "not_found"),
    (StateConflict, 409, "state_conflict"),
    (ValidationError, 400, "validation_error"),
]

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info("🚀 Assessment Engine starting...")

    try:
        validation = config.validate()
        if not validation["valid"]:
            raise Exception(f"Configuration invalid: {validation['issues']}")
        logger.info("✅ Configuration validated")

        db_manager = get_db_manager()
        db_health = db_manager.validate_connection()
        if not db_health["overall"]:
            raise Exception(f"Database validation failed: {db_health}")
        logger.info("✅ Database connected and indexes ensured")

        get_ai_service()
        logger.info(f"✅ Generation gateway ready ({config.GROQ_MODEL})")

    except Exception as e:
        logger.error(f"❌ Startup failed: {e}")
        raise

    yield

    logger.info("👋 Shutting down...")
    close_ai_service()
    close_db_manager()
    logger.info("✅ Graceful shutdown completed")

# Create FastAPI application
app = FastAPI(
    title=config.API_TITLE,
    description=config.API_DESCRIPTION,
    version=config.API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS.split(','),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)

# Exception handlers
@app.exception_handler(AssessmentError)
async def assessment_error_handler(request: Request, exc: AssessmentError):
    """Map the error taxonomy to HTTP responses"""
    for error_class, status_code, error_type in ERROR_RESPONSES:
        if isinstance(exc, error_class):
            break
    else:
        status_code, error_type = 500, "server_error"

    if status_code >= 500:
        logger.error(f"{error_type}: {exc}")
    else:
        logger.warning(f"{error_type}: {exc}")

    content = {"error": type(exc).__name__, "message": str(exc), "type": error_type}
    if isinstance(exc, MalformedResponse) and exc.raw is not None:
        content["raw"] = exc.raw
    return JSONResponse(status_code=status_code, content=content)

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
            "type": "server_error"
        }
    )

# Health check endpoints
@app.get("/health")
def health_check():
    """Component health"""
    health_status = {
        "status": "healthy",
        "service": "assessment_engine",
        "version": config.API_VERSION
    }

    try:
        db_health = get_db_manager().validate_connection()
        health_status["database"] = "healthy" if db_health["overall"] else "degraded"
    except Exception as e:
        health_status["database"] = "error"
        logger.warning(f"Database health check failed: {e}")

    try:
        health_status["ai_service"] = get_ai_service().health_check()["status"]
    except Exception as e:
        health_status["ai_service"] = "error"
        logger.warning(f"AI service health check failed: {e}")

    if "error" in (health_status["database"], health_status["ai_service"]):
        health_status["status"] = "degraded"
    return health_status

@app.get("/info")
def api_info():
    """API information and capabilities"""
    return {
        "name": config.API_TITLE,
        "version": config.API_VERSION,
        "description": config.API_DESCRIPTION,
        "configuration": {
            "model": config.GROQ_MODEL,
            "generation_max_attempts": config.GENERATION_MAX_ATTEMPTS,
            "generation_backoff_seconds": config.GENERATION_BACKOFF_SECONDS,
            "questions_per_quiz": config.QUESTIONS_PER_QUIZ,
            "leaderboard_page_size": config.LEADERBOARD_PAGE_SIZE
        },
        "endpoints": {
            "start_interview": "POST /api/interviews/start",
            "start_aptitude": "POST /api/aptitude/start",
            "next_question": "GET /api/sessions/{session_id}/question",
            "submit_answer": "POST /api/sessions/answer",
            "finish_session": "POST /api/sessions/finish",
            "weekly_quiz": "GET /api/quiz/home/user/{user_id}",
            "global_quiz": "GET /api/quiz/global",
            "submit_quiz": "POST /api/quiz/{quiz_id}/submit",
            "leaderboard": "GET /api/quiz/leaderboard",
            "health": "GET /health",
            "docs": "GET /docs"
        }
    }

if __name__ == "__main__":
    import uvicorn

    logger.info("🚀 Starting Assessment Engine API")
    logger.info(f"🌐 Server: http://{config.API_HOST}:{config.API_PORT}")

    uvicorn.run(
        "assessment_engine.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.LOG_LEVEL.lower()
    )
