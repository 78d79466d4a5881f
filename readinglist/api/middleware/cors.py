"""
Cross-origin access for the browser client.

The client sends the session cookie on cross-origin requests, which browsers
only allow when the response names the exact origin and allows credentials.
Origins are therefore always an explicit list, never ``*``.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Vite and CRA dev servers
DEVELOPMENT_ORIGINS = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
)


@dataclass
class CORSConfig:
    """Origins and headers the browser client may use."""

    allowed_origins: List[str] = field(default_factory=list)
    allow_credentials: bool = True
    allowed_methods: List[str] = field(default_factory=lambda: ["GET", "POST", "PUT", "DELETE"])
    allowed_headers: List[str] = field(default_factory=lambda: ["Content-Type", "X-Request-ID"])
    # Readable by client-side code; Retry-After lets the UI show a wait time
    expose_headers: List[str] = field(default_factory=lambda: [
        "X-Request-ID",
        "X-Rate-Limit-Remaining",
        "Retry-After",
    ])
    max_age: int = 600


def _normalize_origin(origin: str) -> str:
    return origin.strip().rstrip("/")


def get_cors_config(
    environment: str = "development",
    frontend_url: Optional[str] = None,
    extra_origins: Iterable[str] = (),
) -> CORSConfig:
    """
    Collect the allowed origins for an environment.

    Production trusts only ``frontend_url`` and the configured extras; every
    other environment also accepts the local dev servers.
    """
    candidates = [] if environment == "production" else list(DEVELOPMENT_ORIGINS)
    if frontend_url:
        candidates.append(frontend_url)
    candidates.extend(extra_origins)

    origins = []
    for origin in map(_normalize_origin, candidates):
        if origin and origin != "*" and origin not in origins:
            origins.append(origin)

    return CORSConfig(allowed_origins=origins)


def setup_cors(app: FastAPI, config: Optional[CORSConfig] = None) -> None:
    """Install Starlette's CORS middleware with ``config``."""
    config = config or get_cors_config()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=config.allow_credentials,
        allow_methods=config.allowed_methods,
        allow_headers=config.allowed_headers,
        expose_headers=config.expose_headers,
        max_age=config.max_age,
    )
