"""Admission middleware: runs the admission pipeline around every request."""

from fastapi import Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from gatekeeper.auth.dependencies import get_optional_user_id
from gatekeeper.config import Settings
from gatekeeper.services.pipeline import RequestContext

CUSTOM_DATA_HEADER = "x-custom-data"


def get_client_ip(request: Request, settings: Settings) -> str:
    """Client address, taken from the first X-Forwarded-For hop when proxies are trusted."""
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def build_request_context(request: Request, settings: Settings) -> RequestContext:
    """Collect the identity and scannable content of a request."""
    body = await request.body()
    content: list = [body, dict(request.query_params)]
    custom = request.headers.get(CUSTOM_DATA_HEADER)
    if custom:
        content.append(custom)

    return RequestContext(
        ip=get_client_ip(request, settings),
        endpoint=request.url.path,
        user_id=get_optional_user_id(request, settings),
        content=content,
    )


class AdmissionMiddleware(BaseHTTPMiddleware):
    """
    Apply the admission pipeline and report the final status back to it.

    Paths in ``exempt_paths`` bypass the pipeline entirely.
    """

    def __init__(self, app: ASGIApp, exempt_paths: frozenset[str] = frozenset()):
        super().__init__(app)
        self.exempt_paths = exempt_paths

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        services = request.app.state.services
        pipeline = services.pipeline
        context = await build_request_context(request, services.settings)
        decision = await run_in_threadpool(pipeline.admit, context)

        if not decision.allowed:
            response = JSONResponse(status_code=decision.status_code, content=decision.body)
            if decision.tracked:
                await run_in_threadpool(pipeline.on_response_complete, context, response.status_code)
            return response

        request.state.client_key = decision.client_key
        request.state.is_suspicious = decision.suspicious
        request.state.suspicious_reason = decision.suspicious_reason

        try:
            response = await call_next(request)
        except Exception:
            await run_in_threadpool(pipeline.on_response_complete, context, 500)
            raise

        await run_in_threadpool(pipeline.on_response_complete, context, response.status_code)
        response.headers.update(decision.headers)
        return response
