"""
FastAPI Team Certificate Verifier
Composition root and HTTP endpoints
"""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from teamcert.config import Settings
from teamcert.layout import DEFAULT_ELEMENTS, TEAM_ONLY_ELEMENTS, scale_elements
from teamcert.roster_cache import RosterCache
from teamcert.roster_handler import load_roster
from teamcert.verification import CertificateService

logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "Full name and team name must be submitted as text"


class CertificateRequest(BaseModel):
    participant_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("participant_name", "participantName", "username"),
    )
    team_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("team_name", "teamName"))


class CertificateResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    artifact: Optional[str] = None


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_service(settings: Settings) -> CertificateService:
    roster_cache = RosterCache(
        partial(load_roster, settings.roster_path),
        ttl=settings.cache_ttl_seconds,
        serve_stale_on_error=settings.serve_stale_roster,
    )
    return CertificateService(
        roster_cache,
        template_path=settings.template_path,
        font_path=settings.font_path,
        elements=scale_elements(
            DEFAULT_ELEMENTS if settings.include_organization else TEAM_ONLY_ELEMENTS,
            settings.layout_scale,
        ),
        max_width_ratio=settings.max_width_ratio,
        strict_fit=settings.strict_fit,
        color=settings.text_color,
        resolution=settings.pdf_resolution,
    )


def create_app(settings: Optional[Settings] = None, service: Optional[CertificateService] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    service = service or build_service(settings)

    app = FastAPI(
        title="Team Certificate Verifier",
        description="Verifies registered teams and generates their certificates",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Malformed bodies get the same 200 response shape as every other rejection.
        logger.info("Rejected malformed certificate request: %s", exc.errors())
        response = CertificateResponse(success=False, message=INVALID_REQUEST_MESSAGE)
        return JSONResponse(status_code=200, content=response.model_dump())

    @app.get("/health")
    async def health_check() -> Dict[str, Any]:
        """
        Health check endpoint for monitoring

        Returns:
            Status, configured asset paths and the cached roster size
        """
        snapshot = service.roster_cache.snapshot
        return {
            "status": "running",
            "paths": {
                "roster": settings.roster_path,
                "roster_exists": Path(settings.roster_path).exists(),
                "template_image": settings.template_path,
                "template_exists": Path(settings.template_path).exists(),
                "font": settings.font_path,
                "font_exists": bool(settings.font_path) and Path(settings.font_path).exists(),
            },
            "cached_records": len(snapshot) if snapshot is not None else None,
        }

    @app.post("/certificate", response_model=CertificateResponse)
    async def verify_and_generate_certificate(request: CertificateRequest) -> CertificateResponse:
        """
        Verify a participant/team pair and return the certificate

        Failures are reported in the body with success=false, never as HTTP errors.
        """
        logger.info("Verifying participant: %r / %r", request.participant_name, request.team_name)
        result = await service.verify_and_generate_certificate(request.participant_name, request.team_name)
        return CertificateResponse(**result.as_dict())

    return app


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)


# Run with: uvicorn teamcert.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
