# karnya/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from karnya.core.config import settings
from karnya.core.db import Base, engine
from karnya.core.errors import ServerError, ServiceError, ValidationError

from karnya.models.user import Account  # noqa: F401
from karnya.models.hotel import Hotel, HotelCuisine  # noqa: F401
from karnya.models.ngo import Ngo, NgoFocusArea  # noqa: F401

from karnya.routers.health import router as health_router
from karnya.routers.auth import router as auth_router
from karnya.routers.entities import hotels_router, ngos_router
from karnya.routers.admin import router as admin_router

logger = logging.getLogger(__name__)

routers = [
    health_router,
    auth_router,
    hotels_router,
    ngos_router,
    admin_router,
]


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready (%s), tables: %s", engine.url.get_backend_name(), sorted(Base.metadata.tables))
    yield
    engine.dispose()


def _field_name(loc) -> str:
    # drop the "body"/"query"/"path" prefix
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [{"field": _field_name(e.get("loc", ())), "message": e.get("msg", "")} for e in exc.errors()]
        err = ValidationError(errors)
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def db_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        err = ServerError()
        return JSONResponse(status_code=err.status_code, content=err.to_dict())


def custom_openapi(app: FastAPI):
    def _openapi():
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            description="Karnya API",
            routes=app.routes,
        )
        comps = schema.setdefault("components", {})
        schemes = comps.setdefault("securitySchemes", {})
        schemes["BearerAuth"] = {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
        schema["security"] = [{"BearerAuth": []}]
        app.openapi_schema = schema
        return app.openapi_schema

    return _openapi


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Karnya API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    for r in routers:
        app.include_router(r)

    app.openapi = custom_openapi(app)
    return app


app = create_app()
