"""
PAYMENTS SERVICE
================

HTTP front of the payment pipeline.

Endpoints:
- GET  /                 service descriptor
- GET  /health           liveness check
- POST /process-payment  validate card, run simulated gateway, report outcome

Every request carries its inbound ``baggage`` header through the handlers
and into each log line, and gets it back as ``X-Baggage-Received``.

Run with ``python -m payments_service`` or
``uvicorn payments_service.app:create_app --factory``.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from payments_service.baggage import BaggageMiddleware, RequestContext, get_request_context
from payments_service.cards import MISSING_FIELDS_MESSAGE
from payments_service.config import Settings
from payments_service.gateway import PaymentGateway
from payments_service.log import JsonLogger
from payments_service.processor import PaymentProcessor

HEALTH_SERVICE_NAME = 'payments-service'


# =============================================================================
# API MODELS
# =============================================================================

class PaymentRequest(BaseModel):
    # Optional so that absence is reported as MissingField, not a framework error
    paymentId: Optional[str] = None
    cardNumber: Optional[str] = None


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[PaymentGateway] = None,
    logger: Optional[JsonLogger] = None,
) -> FastAPI:
    """Build the payments service application."""
    settings = settings or Settings.from_env()
    logger = logger or JsonLogger(
        service_name=settings.service_name,
        version=settings.service_version,
        environment=settings.environment,
        level=settings.log_level,
    )
    gateway = gateway or PaymentGateway(
        delay_range=(settings.payment_delay_min, settings.payment_delay_max),
    )
    processor = PaymentProcessor(gateway)

    app = FastAPI(title="Payments Service", version=settings.service_version)
    app.state.settings = settings
    app.state.logger = logger
    app.state.processor = processor

    # =========================================================================
    # MIDDLEWARE
    # =========================================================================

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        context = get_request_context(request)
        context.logger.info("Incoming request",
                            method=request.method,
                            url=request.url.path,
                            user_agent=request.headers.get('user-agent'),
                            content_type=request.headers.get('content-type'))
        try:
            return await call_next(request)
        except Exception as e:
            context.logger.exception("Unhandled error",
                                     exc=e,
                                     url=request.url.path,
                                     method=request.method)
            return JSONResponse(status_code=500, content={
                'success': False,
                'error': 'Internal server error',
                'message': str(e) if settings.is_development else 'Something went wrong',
            })

    # Added last so it runs first and the context exists for everything inside
    app.add_middleware(BaggageMiddleware, logger=logger)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        context = get_request_context(request)
        # Only field locations are logged, the submitted values may hold card data
        context.logger.warn("Invalid payment request body",
                            url=request.url.path,
                            fields=['.'.join(str(part) for part in err.get('loc', ())) for err in exc.errors()])
        return JSONResponse(status_code=400, content={
            'success': False,
            'error': MISSING_FIELDS_MESSAGE,
        })

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        context = get_request_context(request)
        if exc.status_code == 404:
            context.logger.warn("Route not found",
                                url=request.url.path,
                                method=request.method)
            return JSONResponse(status_code=404, content={
                'success': False,
                'error': 'Route not found',
                'message': f"Cannot {request.method} {request.url.path}",
            })
        context.logger.warn("HTTP error",
                            url=request.url.path,
                            method=request.method,
                            http_status=exc.status_code)
        return JSONResponse(status_code=exc.status_code, content={
            'success': False,
            'error': exc.detail,
        }, headers=getattr(exc, 'headers', None))

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    @app.get("/")
    def root(context: RequestContext = Depends(get_request_context)):
        context.logger.info("Root endpoint accessed")
        return {
            'service': settings.service_name,
            'version': settings.service_version,
            'status': 'running',
            'endpoints': {
                'health': 'GET /health',
                'processPayment': 'POST /process-payment',
            },
        }

    @app.get("/health")
    def health(context: RequestContext = Depends(get_request_context)):
        context.logger.info("Health check requested")
        body = {
            'status': 'healthy',
            'service': HEALTH_SERVICE_NAME,
            'timestamp': _utc_now_iso(),
        }
        context.logger.info("Health check completed successfully")
        return body

    @app.post("/process-payment")
    async def process_payment(
        payment: PaymentRequest,
        context: RequestContext = Depends(get_request_context),
    ):
        result = await processor.process(payment.paymentId, payment.cardNumber, context)
        return JSONResponse(status_code=result.status_code, content=result.body)

    return app
