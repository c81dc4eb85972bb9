from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .db.dynamodb.errors import DdbError, http_status_for
from .middleware.access_log import AccessLogMiddleware
from .middleware.auth import AuthMiddleware, TokenVerifier
from .middleware.cors import build_allowed_origins
from .middleware.request_context import RequestContextMiddleware
from .observability.logging import configure_logging, get_logger
from .opportunities.generation import OpportunityGenerationError
from .problem_details import problem_response
from .routers.health import router as health_router
from .routers.intentions import router as intentions_router
from .routers.opportunities import router as opportunities_router
from .routers.steps import router as steps_router
from .services import Services, build_services
from .settings import Settings, get_settings


def create_app(
    *,
    settings: Settings | None = None,
    services: Services | None = None,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(level=settings.log_level)
    log = get_logger("startup")

    app = FastAPI(
        title="King's Canvas API",
        version="1.0.0",
        default_response_class=ORJSONResponse,
        redirect_slashes=False,
    )
    app.state.settings = settings
    app.state.services = services or build_services(settings)

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Last added is outermost: request context wraps CORS, which wraps auth.
    app.add_middleware(AuthMiddleware, settings=settings, verifier=token_verifier)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/"})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=build_allowed_origins(
            frontend_base_url=settings.frontend_base_url,
            frontend_urls=settings.frontend_urls,
        ),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DdbError, _ddb_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(OpportunityGenerationError, _generation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    app.include_router(health_router)
    app.include_router(steps_router, prefix="/api")
    app.include_router(opportunities_router, prefix="/api")
    app.include_router(intentions_router, prefix="/api")
    return app


def _ddb_error_handler(request: Request, exc: DdbError) -> Response:
    status_code, title = http_status_for(exc)
    extensions = {
        "operation": exc.operation,
        "table": exc.table_name,
        "awsRequestId": exc.aws_request_id,
        "retryable": bool(exc.retryable),
    }
    return problem_response(
        request=request,
        status_code=status_code,
        title=title,
        detail=str(exc),
        extensions={k: v for k, v in extensions.items() if v is not None},
    )


def _generation_error_handler(request: Request, exc: OpportunityGenerationError) -> Response:
    return problem_response(
        request=request,
        status_code=exc.status_code,
        detail=exc.message,
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)

    title: str | None = None
    safe_detail: str | None = None
    extensions: dict | None = None
    if isinstance(detail, dict):
        extensions = detail
        msg = detail.get("message")
        if isinstance(msg, str) and msg.strip():
            safe_detail = msg.strip()
    elif detail is not None:
        safe_detail = str(detail)

    if status_code == 404 and not safe_detail:
        title = "Not Found"
        safe_detail = "Route not found"

    return problem_response(
        request=request,
        status_code=status_code,
        title=title,
        detail=safe_detail,
        extensions=extensions,
    )


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors: list[dict[str, object]] = []
    for e in exc.errors():
        loc = e.get("loc") or ()
        errors.append(
            {
                "path": ".".join(str(x) for x in loc if x != "body"),
                "message": e.get("msg", "Invalid value"),
                "type": e.get("type"),
            }
        )
    return problem_response(
        request=request,
        status_code=422,
        title="Validation Failed",
        detail="Request validation failed",
        errors=errors,
    )


def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    user = getattr(request.state, "user", None)
    get_logger("unhandled").exception(
        "unhandled_exception",
        http_method=request.method.upper(),
        path=request.url.path,
        user=getattr(user, "email", None),
        exc_info=exc,
    )
    return problem_response(
        request=request,
        status_code=500,
        title="Internal Server Error",
        detail=str(exc) or None,
    )


app = create_app()
