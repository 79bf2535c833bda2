from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from .core.errors import DomainError
from .core.logging_setup import setup_logging
from .db.base import Base
from .db.session import SessionLocal, engine
from .api.routes import router
from .services.family_service import ensure_default_family

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        ensure_default_family(db)
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Taskstars API", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    app.include_router(router)
    return app


app = create_app()
