"""
FastAPI application entry point.
Builds the gateway components once at startup and wires the object routes.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.api.router import api_router
from gateway.auth.gate import AuthorizationGate
from gateway.auth.remote_verification import RemoteVerificationClient
from gateway.config import GatewayConfig, get_settings
from gateway.errors import GatewayError, MethodNotAllowed
from gateway.middleware.metrics_middleware import MetricsMiddleware
from gateway.services.multipart import MultipartUploadOrchestrator
from gateway.services.objects import ObjectService
from gateway.storage.r2_client import R2Client
from gateway.utils.logging import configure_logging
from gateway.utils.metrics import start_metrics_server


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: configure logging, build components, start metrics server
    - Shutdown: stop metrics server
    """
    settings = get_settings()
    configure_logging('order-gateway', settings.log_level)

    config = GatewayConfig.from_settings(settings)
    store = R2Client(config.storage)

    app.state.gate = AuthorizationGate(config, RemoteVerificationClient(config))
    app.state.orchestrator = MultipartUploadOrchestrator(store)
    app.state.object_service = ObjectService(store)

    metrics_server = None
    if settings.metrics_port:
        metrics_server = start_metrics_server(settings.metrics_port)

    yield

    if metrics_server is not None:
        metrics_server.shutdown()


# Create FastAPI app
app = FastAPI(
    title="Order Gateway",
    description="Order-verified access to the object store with multipart uploads",
    version="0.1.0",
    lifespan=lifespan,
    # Every path is an object key; keep the docs routes from shadowing any
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

app.add_middleware(MetricsMiddleware)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    """Render every gateway failure as a plain-text response with its status."""
    return PlainTextResponse(exc.message, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(StarletteHTTPException)
async def routing_error_handler(request: Request, exc: StarletteHTTPException):
    """Methods the object route does not accept get the same 405 as unsupported routed ones."""
    if exc.status_code == 405:
        return await gateway_error_handler(request, MethodNotAllowed())
    return await http_exception_handler(request, exc)


app.include_router(api_router)
