import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from tradeapi import containers
from tradeapi.config import settings
from tradeapi.core.exception_handlers import (
    handle_base_api_exception,
    handle_http_exception,
    handle_unexpected_error,
    handle_validation_error,
)
from tradeapi.core.exceptions import BaseAPIException
from tradeapi.core.logging_middleware import LoggingMiddleware
from tradeapi.logging_config import setup_logging
from tradeapi.routers import crypto_router, health_router, trade_router, wallet_router

load_dotenv("tradeapi/.env")
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
    )
    container = containers.Container()
    app.container = container  # type: ignore
    app.add_event_handler("shutdown", lambda: container.infra.redis_service().close())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(health_router.router)
    app.include_router(wallet_router.router, prefix=settings.API_V1_STR)
    app.include_router(trade_router.router, prefix=settings.API_V1_STR)
    app.include_router(crypto_router.router, prefix=settings.API_V1_STR)

    @app.get("/")
    def hello() -> dict:
        return {"message": f"{settings.PROJECT_NAME} is running"}

    return app


app = create_app()

handler = Mangum(app)
