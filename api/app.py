"""FastAPI entrypoint exposing the finance tracker functions.

Run with ``uvicorn --factory api.app:create_app``.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, FastAPI, Header, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.db.supabase_client import SupabaseRequestError
from backend.errors import FinanceError, UnauthorizedError, ValidationFailedError
from backend.factory import Services, build_services
from backend.reporting import analyze_budgets, calculate_insights, generate_budgets
from backend.services.transaction_service import parse_transaction_id
from shared import config as _config
from shared.models import (
    BudgetAnalysisRequest,
    LoginRequest,
    RegisterRequest,
    TransactionCreateRequest,
    TransactionQueryParams,
    TransactionUpdateRequest,
)


logger = logging.getLogger(__name__)

AUTH_FUNCTION = "auth-service"
TRANSACTION_FUNCTION = "transaction-api"
INSIGHTS_FUNCTION = "calculate-insights"
BUDGET_FUNCTION = "budget-analyzer"
DASHBOARD_FUNCTION = "finance-app"

_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
_ALLOWED_HEADERS = ["Content-Type", "Authorization"]
_DASHBOARD_PATH = Path(__file__).parent / "static" / "finance_app.html"
_CONTENT_SECURITY_POLICY = (
    "script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data: https:; font-src 'self' data:; connect-src 'self' https: data:;"
)
_VALUE_ERROR_PREFIX = "Value error, "


router = APIRouter()


def get_services(request: Request) -> Services:
    return request.app.state.services


def _function_name(request: Request) -> str:
    return request.url.path.strip("/").split("/", maxsplit=1)[0] or "unknown"


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def _respond(function_name: str, status_code: int = 200, **fields: Any) -> JSONResponse:
    content = {name: _dump(value) for name, value in fields.items()}
    content["function"] = function_name
    return JSONResponse(status_code=status_code, content=content)


def _error_response(function_name: str, status_code: int, message: str, details: str | None = None) -> JSONResponse:
    fields: dict[str, Any] = {"success": False, "error": message}
    if details is not None:
        fields["details"] = details
    return _respond(function_name, status_code, **fields)


def _validation_message(errors: list[dict[str, Any]]) -> str:
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request"))
    if message.startswith(_VALUE_ERROR_PREFIX):
        message = message[len(_VALUE_ERROR_PREFIX) :]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query")]
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


def _extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise UnauthorizedError("Authorization token required")
    prefix = "Bearer "
    if not authorization.startswith(prefix):
        raise UnauthorizedError("Authorization token required")
    token = authorization[len(prefix) :].strip()
    if not token:
        raise UnauthorizedError("Authorization token required")
    return token


def _authenticate(services: Services, authorization: str | None) -> UUID:
    """Resolve the caller's user id; this id scopes every transaction query."""

    token = _extract_bearer_token(authorization)
    return services.token_verifier.verify(token)


def _require_body(payload: Any) -> dict[str, Any]:
    if payload is None or payload == {}:
        raise ValidationFailedError("Request body is required")
    if not isinstance(payload, dict):
        raise ValidationFailedError("Request body must be a JSON object")
    return payload


def _require_id(transaction_id: str | None) -> UUID:
    if not transaction_id:
        raise ValidationFailedError("Transaction ID is required in query params")
    return parse_transaction_id(transaction_id)


def preflight() -> Response:
    """Answer OPTIONS requests that are not CORS preflights with success."""

    return JSONResponse(
        status_code=200,
        content={},
        headers={
            "Access-Control-Allow-Methods": ", ".join(_ALLOWED_METHODS),
            "Access-Control-Allow-Headers": ", ".join(_ALLOWED_HEADERS),
        },
    )


for _function_path in (AUTH_FUNCTION, TRANSACTION_FUNCTION, INSIGHTS_FUNCTION, BUDGET_FUNCTION, DASHBOARD_FUNCTION):
    router.add_api_route(f"/{_function_path}", preflight, methods=["OPTIONS"], include_in_schema=False)


@router.post("/auth-service")
def auth_service_post(
    action: str | None = None,
    payload: Any = Body(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Register (`action=register`) or log in (`action=login`)."""

    if action == "register":
        session = services.auth_service.register(RegisterRequest.model_validate(_require_body(payload)))
        return _respond(AUTH_FUNCTION, 201, success=True, data=session)

    if action == "login":
        session = services.auth_service.login(LoginRequest.model_validate(_require_body(payload)))
        return _respond(AUTH_FUNCTION, 200, success=True, data=session)

    raise ValidationFailedError("Invalid action. Use action=register or action=login")


@router.get("/auth-service")
def auth_service_get(
    action: str | None = None,
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Verify a bearer token (`action=verify`) or report liveness (`action=health`)."""

    if action == "verify":
        token = _extract_bearer_token(authorization)
        user = services.auth_service.verify_token(token)
        return _respond(AUTH_FUNCTION, 200, success=True, user=user)

    if action == "health":
        return _respond(
            AUTH_FUNCTION,
            200,
            success=True,
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    raise ValidationFailedError("Invalid action. Use action=verify or action=health")


@router.post("/transaction-api")
def create_transaction(
    payload: Any = Body(default=None),
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    user_id = _authenticate(services, authorization)
    request = TransactionCreateRequest.model_validate(_require_body(payload))
    transaction = services.transaction_service.create(user_id, request)
    return _respond(TRANSACTION_FUNCTION, 201, success=True, data=transaction)


@router.get("/transaction-api")
def read_transactions(
    request: Request,
    transaction_id: str | None = Query(default=None, alias="id"),
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Return one transaction (`?id=`) or a filtered, paginated list."""

    user_id = _authenticate(services, authorization)
    if transaction_id:
        transaction = services.transaction_service.get(user_id, parse_transaction_id(transaction_id))
        return _respond(TRANSACTION_FUNCTION, 200, success=True, data=transaction)

    params = TransactionQueryParams.model_validate(dict(request.query_params))
    page = services.transaction_service.search(user_id, params)
    return _respond(TRANSACTION_FUNCTION, 200, success=True, data=page.items, pagination=page.pagination)


@router.put("/transaction-api")
def update_transaction(
    transaction_id: str | None = Query(default=None, alias="id"),
    payload: Any = Body(default=None),
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    user_id = _authenticate(services, authorization)
    parsed_id = _require_id(transaction_id)
    request = TransactionUpdateRequest.model_validate(_require_body(payload))
    transaction = services.transaction_service.update(user_id, parsed_id, request)
    return _respond(TRANSACTION_FUNCTION, 200, success=True, data=transaction)


@router.delete("/transaction-api")
def delete_transaction(
    transaction_id: str | None = Query(default=None, alias="id"),
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    user_id = _authenticate(services, authorization)
    transaction = services.transaction_service.delete(user_id, _require_id(transaction_id))
    return _respond(TRANSACTION_FUNCTION, 200, success=True, data=transaction)


@router.get("/calculate-insights")
def get_insights(
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    started = time.perf_counter()
    user_id = _authenticate(services, authorization)
    transactions = services.transaction_service.list_all(user_id)
    insights = calculate_insights(transactions)
    return _respond(
        INSIGHTS_FUNCTION,
        200,
        success=True,
        data=insights,
        userId=str(user_id),
        transactionsCount=len(transactions),
        computedAt=int(time.time()),
        processingTimeMs=int((time.perf_counter() - started) * 1000),
    )


def _budget_response(services: Services, user_id: UUID, budgets: list | None) -> JSONResponse:
    started = time.perf_counter()
    transactions = services.transaction_service.list_all(user_id)
    if budgets is None:
        budgets = generate_budgets(transactions)
    analysis = analyze_budgets(budgets, transactions, today=date.today())
    return _respond(
        BUDGET_FUNCTION,
        200,
        success=True,
        data=analysis,
        budgets=budgets,
        transactionsCount=len(transactions),
        computedAt=int(time.time()),
        processingTimeMs=int((time.perf_counter() - started) * 1000),
    )


@router.get("/budget-analyzer")
def get_budget_analysis(
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Analyse current-month spending against budgets derived from history."""

    user_id = _authenticate(services, authorization)
    return _budget_response(services, user_id, None)


@router.post("/budget-analyzer")
def post_budget_analysis(
    payload: Any = Body(default=None),
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Analyse current-month spending against caller-supplied budgets."""

    user_id = _authenticate(services, authorization)
    request = BudgetAnalysisRequest.model_validate(_require_body(payload))
    return _budget_response(services, user_id, request.budgets)


@router.get("/finance-app", response_class=HTMLResponse)
def finance_app() -> HTMLResponse:
    return HTMLResponse(
        content=_DASHBOARD_PATH.read_text(encoding="utf-8"),
        headers={"Content-Security-Policy": _CONTENT_SECURITY_POLICY},
    )


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FinanceError)
    async def handle_finance_error(request: Request, exc: FinanceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "backend_error method=%s path=%s message=%s",
                request.method,
                request.url.path,
                exc.message,
            )
            details = exc.message if _config.is_development() else None
            return _error_response(_function_name(request), exc.status_code, "Internal server error", details)

        logger.info(
            "request_rejected method=%s path=%s code=%s message=%s",
            request.method,
            request.url.path,
            exc.code.value,
            exc.message,
        )
        return _error_response(_function_name(request), exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(_function_name(request), 400, _validation_message(list(exc.errors())))

    @app.exception_handler(ValidationError)
    async def handle_model_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error_response(_function_name(request), 400, _validation_message(list(exc.errors())))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(_function_name(request), exc.status_code, str(exc.detail))

    @app.exception_handler(SupabaseRequestError)
    async def handle_store_error(request: Request, exc: SupabaseRequestError) -> JSONResponse:
        logger.error(
            "store_request_failed method=%s path=%s status=%s",
            request.method,
            request.url.path,
            exc.status_code,
        )
        details = str(exc) if _config.is_development() else None
        return _error_response(_function_name(request), 500, "Internal server error", details)

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        """Return a JSON 500 response for unhandled exceptions."""

        logger.exception(
            "unhandled_exception method=%s path=%s exception_type=%s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc_info=exc,
        )
        details = str(exc) if _config.is_development() else None
        return _error_response(_function_name(request), 500, "Internal server error", details)


def create_app(services: Services | None = None) -> FastAPI:
    """Build the application around an explicitly provided service container."""

    _config.configure_logging()
    app = FastAPI(title="Personal Finance Tracker")
    app.state.services = services or build_services()

    @app.middleware("http")
    async def log_http_requests(request: Request, call_next):
        """Log incoming requests, HTTP status codes and unexpected errors."""

        logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "http_request_failed method=%s path=%s",
                request.method,
                request.url.path,
            )
            raise

        logger.info(
            "http_response_sent method=%s path=%s status_code=%s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response

    allow_origins = _config.cors_allow_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials="*" not in allow_origins,
        allow_methods=_ALLOWED_METHODS,
        allow_headers=_ALLOWED_HEADERS,
    )
    logger.info("cors_allow_origins=%s", allow_origins)

    _install_error_handlers(app)
    app.include_router(router)
    return app
