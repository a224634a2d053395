import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.shared.dtos import ErrorResponse, HealthCheckResponse
from core.logging_config import configure_logging
from core.settings import SETTINGS
from di.container import ApplicationContainer as DependencyContainer
from infra.db_utils import create_schema

configure_logging(SETTINGS.APP)

logger = logging.getLogger("chat")


class CustomFastAPI(FastAPI):
    container: DependencyContainer


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        if not SETTINGS.LLM.OPENAI_API_KEY.get_secret_value():
            raise RuntimeError("OPENAI_API_KEY environment variable is required")

        logger.info("Initializing database connection...")
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        async with db_resource.engine.begin() as _conn:
            # Verify database connection
            await _conn.execute(text("SELECT 1"))
        logger.info(
            f"✅ Database connection established in {time.time() - db_start:.2f}s"
        )

        if SETTINGS.APP.CREATE_TABLES_ON_STARTUP:
            await create_schema(db_resource)

        generator = _app.container.services.reply_generator()
        logger.info(
            f"LLM: primary model {generator.primary_model}, "
            f"fallback {generator.fallback_model}"
        )
        logger.info(
            f"✅ Application startup completed in {time.time() - start_time:.2f}s"
        )
    except Exception as e:
        logger.exception(f"❌ Failed to initialize application: {str(e)}")
        raise

    yield

    try:
        db_resource = _app.container.infrastructure.database()
        if db_resource:
            await db_resource.shutdown()
        logger.info("Application shutdown complete")
    except Exception:
        logger.exception("Error during shutdown")


def create_fastapi_app() -> CustomFastAPI:
    origins = [SETTINGS.CORS.FRONTEND_URL]

    _app = CustomFastAPI(
        title="Support Chat API",
        description="Customer support chat backed by an LLM agent",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Initialize dependency container
    _app.container = DependencyContainer()
    _app.container.infrastructure.config.from_dict(SETTINGS.model_dump())
    _app.container.wire(modules=[sys.modules[__name__]])
    _app.container.init_resources()

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from api.features.chat.router import router as chat_router

    _app.include_router(chat_router, prefix="/api/chat", tags=["Chat"])
    if SETTINGS.APP.ENVIRONMENT == "development":
        # Vite dev server proxies /chat straight through
        _app.include_router(chat_router, prefix="/chat", tags=["Chat"])

    _register_routes(_app)
    _register_exception_handlers(_app)
    return _app


def _register_routes(_app: CustomFastAPI) -> None:
    @_app.get("/health", response_model=HealthCheckResponse)
    async def health():
        return HealthCheckResponse(status="ok")


def _register_exception_handlers(_app: CustomFastAPI) -> None:
    @_app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=str(exc.detail)).model_dump(
                by_alias=True, exclude_none=True
            ),
            headers=getattr(exc, "headers", None),
        )

    @_app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=f"Invalid request. {problems}").model_dump(
                by_alias=True, exclude_none=True
            ),
        )

    @_app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        content = ErrorResponse(
            error="Internal server error",
            details=(
                {"message": str(exc)}
                if SETTINGS.APP.ENVIRONMENT == "development"
                else None
            ),
        )
        return JSONResponse(
            status_code=500,
            content=content.model_dump(by_alias=True, exclude_none=True),
        )


app = create_fastapi_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=SETTINGS.APP.PORT)
