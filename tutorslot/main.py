# tutorslot/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tutorslot.api import session
from tutorslot.config import settings
from tutorslot.database import Base, engine
from tutorslot.exceptions import DomainError

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


configure_logging()

# Create database tables (alembic owns the PostgreSQL-only constraints)
Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(title="TutorSlot API", debug=settings.DEBUG)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://0.0.0.0:8000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"message": exc.message, "code": exc.code, "details": exc.details}},
    )


# API routers
app.include_router(session.router)       # /sessions/*


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "message": "TutorSlot API is running",
        "environment": settings.APP_ENV,
        "version": "1.0.0",
    }
