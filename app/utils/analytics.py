"""
Server-side product analytics.

Events describe what users do with haze: enrichment previews, saves,
searches and the social graph. Outside production they are only logged;
in production they go to PostHog.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from posthog import Posthog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.config import get_settings

logger = logging.getLogger("analytics")

_posthog_client: Optional[Posthog] = None
_initialized: bool = False


def _is_production() -> bool:
    return get_settings().environment.lower() == "production"


def _init_analytics() -> None:
    global _posthog_client, _initialized
    _initialized = True

    settings = get_settings()
    if not _is_production():
        logger.info("[Analytics] Events are logged locally outside production")
        return
    if not settings.posthog_enabled:
        logger.info("[Analytics] PostHog disabled by configuration")
        return
    if not settings.posthog_api_key:
        logger.warning("[Analytics] POSTHOG_API_KEY not set in production")
        return

    _posthog_client = Posthog(settings.posthog_api_key, host=settings.posthog_host)
    logger.info(f"[Analytics] PostHog initialized: {settings.posthog_host}")


def get_posthog_client() -> Optional[Posthog]:
    """Lazily created PostHog client; None outside production or when unconfigured."""
    if not _initialized:
        _init_analytics()
    return _posthog_client


def _send(action: str, call: Callable[[Posthog], Any]) -> None:
    client = get_posthog_client()
    if client is None:
        return
    # Analytics never fails a request
    try:
        call(client)
    except Exception as e:
        logger.error(f"[Analytics] Failed to {action}: {e}")


# =============================================================================
# Core
# =============================================================================

def track_event(
    event_name: str,
    user_id: Optional[str] = None,
    properties: Optional[Dict[str, Any]] = None,
) -> None:
    props = properties or {}
    distinct_id = user_id or "anonymous"

    if not _is_production():
        logger.info(f"[Analytics Event] {event_name} | user={distinct_id} | props={props}")
        return

    _send(
        "capture event",
        lambda client: client.capture(distinct_id=distinct_id, event=event_name, properties=props),
    )


def identify_user(user_id: str, properties: Optional[Dict[str, Any]] = None) -> None:
    """Attach profile properties (username, display name) to a user."""
    props = properties or {}

    if not _is_production():
        logger.debug(f"[Analytics Identify] user={user_id} | props={props}")
        return

    _send("identify user", lambda client: client.identify(distinct_id=user_id, properties=props))


# =============================================================================
# haze Events
# =============================================================================

def track_enrichment_completed(
    user_id: str,
    source_type: str,
    status: str,
    provenance: str,
    confidence: Optional[str] = None,
) -> None:
    """Track a finished enrichment preview (resolved or not)."""
    track_event(
        "enrichment_completed",
        user_id=user_id,
        properties={
            "source_type": source_type,
            "status": status,
            "provenance": provenance,
            "confidence": confidence,
        },
    )


def track_place_saved(
    user_id: str,
    place_id: str,
    source_type: str,
    visibility: str,
    tags: Optional[List[str]] = None,
) -> None:
    track_event(
        "place_saved",
        user_id=user_id,
        properties={
            "place_id": place_id,
            "source_type": source_type,
            "visibility": visibility,
            "tags_count": len(tags or []),
        },
    )


def track_search_executed(
    query: str,
    results_count: int,
    user_id: Optional[str] = None,
    scope: str = "saved",
) -> None:
    track_event(
        "search_executed",
        user_id=user_id,
        properties={
            "query": query,
            "scope": scope,  # saved, profiles
            "results_count": results_count,
        },
    )


def track_friend_request(user_id: str, addressee_id: str, action: str) -> None:
    """Track a friend graph action: sent, accepted, removed."""
    track_event(
        f"friend_request_{action}",
        user_id=user_id,
        properties={"other_user_id": addressee_id},
    )


def track_list_created(user_id: str, list_id: str, collaborators_count: int, is_public: bool) -> None:
    track_event(
        "list_created",
        user_id=user_id,
        properties={
            "list_id": list_id,
            "collaborators_count": collaborators_count,
            "is_public": is_public,
        },
    )


def track_api_request(
    endpoint: str,
    method: str,
    latency_ms: Optional[float] = None,
    status_code: int = 200,
    error: Optional[str] = None,
) -> None:
    track_event(
        "api_request",
        properties={
            "endpoint": endpoint,
            "method": method,
            "latency_ms": latency_ms,
            "status_code": status_code,
            "error": error,
            "success": error is None,
        },
    )


# =============================================================================
# Middleware
# =============================================================================

class AnalyticsMiddleware(BaseHTTPMiddleware):
    """Records one ``api_request`` event per call with latency and status."""

    SKIP_PATHS = frozenset({"/", "/health", "/favicon.ico"})

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500
        error = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as e:
            error = str(e)
            raise
        finally:
            track_api_request(
                endpoint=request.url.path,
                method=request.method,
                latency_ms=round((time.perf_counter() - started) * 1000, 1),
                status_code=status_code,
                error=error,
            )


def shutdown_analytics() -> None:
    """Flush queued events; called from the application lifespan."""
    global _posthog_client
    if _posthog_client is None:
        return
    _posthog_client.shutdown()
    _posthog_client = None
    logger.info("[Analytics] PostHog shutdown")
