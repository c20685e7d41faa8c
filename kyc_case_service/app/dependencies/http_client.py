from fastapi import Request
import httpx

from kyc_case_service.app.service.exceptions import ConfigurationError

async def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    FastAPI dependency provider for the shared httpx.AsyncClient instance
    created at startup (`request.app.state.http_client`).
    """
    http_client = getattr(request.app.state, "http_client", None)
    if http_client is None:
        raise ConfigurationError("Shared HTTP client is not initialized; application startup has not run.")
    return http_client
