from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ordering.api.v1 import api_router
from ordering.core.config import settings
from ordering.core.logging_config import configure_logging
from ordering.middleware import RequestLoggingMiddleware
from ordering.schemas.error import ErrorResponse
from ordering.services.order_draft import OrderNotSubmittableError
from ordering.services.storefront_api import StorefrontApiError


def get_application() -> FastAPI:
    configure_logging(settings.log_json)
    tags_metadata = [
        {"name": "quote", "description": "Offer evaluation and order totals"},
        {"name": "orders", "description": "Order placement and edit previews"},
    ]
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        openapi_tags=tags_metadata,
        swagger_ui_parameters={"displayRequestDuration": True},
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router, prefix="/api/v1")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        payload = ErrorResponse.build(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(payload.model_dump()))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        payload = ErrorResponse.build(errors, "validation_error")
        return JSONResponse(status_code=422, content=payload.model_dump())

    @app.exception_handler(OrderNotSubmittableError)
    async def not_submittable_handler(request: Request, exc: OrderNotSubmittableError):
        payload = ErrorResponse.build(exc.message, exc.code)
        return JSONResponse(status_code=400, content=payload.model_dump())

    @app.exception_handler(StorefrontApiError)
    async def upstream_error_handler(request: Request, exc: StorefrontApiError):
        payload = ErrorResponse.build(exc.message, "upstream_rejected")
        return JSONResponse(status_code=502, content=payload.model_dump())

    return app


app = get_application()
