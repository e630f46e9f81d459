from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/healthcheck")
def healthcheck(request: Request) -> dict:
    """Report availability, operating environment and version.

    Used by load balancers and monitoring systems to determine service health.
    """

    app_settings = request.app.state.settings.app
    return {
        "status": "available",
        "system_info": {
            "environment": app_settings.env,
            "version": app_settings.version,
        },
    }
