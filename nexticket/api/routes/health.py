"""Health check endpoint.

Liveness probe plus credential readiness for the store and Gemini (presence
only, no remote call).
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request

from nexticket.config import APP_VERSION

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    has_api_key = bool(os.getenv("GOOGLE_API_KEY"))
    has_project = bool(os.getenv("GOOGLE_CLOUD_PROJECT"))

    return {
        "status": "healthy",
        "service": "NexTicket API",
        "version": APP_VERSION,
        "variant": request.app.state.variant.name,
        "timestamp": datetime.now(UTC).isoformat(),
        "store": {"configured": bool(os.getenv("SUPABASE_URL") and os.getenv("SUPABASE_ANON_KEY"))},
        "llm": {
            "ready": has_api_key or has_project,
            "google_api_key": has_api_key,
            "google_cloud_project": has_project,
        },
        "sessions": len(request.app.state.sessions),
    }
