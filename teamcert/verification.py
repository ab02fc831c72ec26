"""
Verification Service
Matches a submitted (participant, team) pair against the roster and renders the certificate
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from teamcert.certificate_generator import DEFAULT_PDF_RESOLUTION, DEFAULT_TEXT_COLOR, CertificateGenerator
from teamcert.errors import DataSourceError, TemplateError, ValidationError
from teamcert.layout import DEFAULT_ELEMENTS, DEFAULT_MAX_WIDTH_RATIO, TextElement, build_layout
from teamcert.roster_cache import RosterCache
from teamcert.roster_handler import RosterRecord, normalize_name

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Certificate generated successfully"
NOT_FOUND_MESSAGE = "Participant details not found in registered participants list"
ROSTER_UNAVAILABLE_MESSAGE = "Participant roster is currently unavailable"
RENDER_FAILED_MESSAGE = "Failed to generate certificate"


@dataclass(frozen=True)
class CertificateResult:
    success: bool
    message: Optional[str] = None
    artifact: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_input(participant_name: Optional[str], team_name: Optional[str]) -> None:
    if not (participant_name or "").strip():
        raise ValidationError("participant_name", "Full name is required")
    if not (team_name or "").strip():
        raise ValidationError("team_name", "Team name is required")


class CertificateService:
    """Verify participants and generate their certificates"""

    def __init__(
        self,
        roster_cache: RosterCache,
        template_path: str,
        font_path: Optional[str] = None,
        elements: Sequence[TextElement] = DEFAULT_ELEMENTS,
        max_width_ratio: float = DEFAULT_MAX_WIDTH_RATIO,
        strict_fit: bool = False,
        color: Tuple[int, int, int] = DEFAULT_TEXT_COLOR,
        resolution: float = DEFAULT_PDF_RESOLUTION,
        renderer_factory: Callable[..., Any] = CertificateGenerator,
    ):
        self.roster_cache = roster_cache
        self.template_path = template_path
        self.font_path = font_path
        self.elements = tuple(elements)
        self.max_width_ratio = max_width_ratio
        self.strict_fit = strict_fit
        self.color = color
        self.resolution = resolution
        self._renderer_factory = renderer_factory

    async def verify(self, participant_name: str, team_name: str) -> Optional[RosterRecord]:
        """
        Find the roster record for a participant and team

        Args:
            participant_name: Name as typed by the participant
            team_name: Team name as typed by the participant

        Returns:
            The first matching record in roster order, or None

        Raises:
            DataSourceError: If the roster could not be loaded
        """
        snapshot = await self.roster_cache.get()

        wanted_name = normalize_name(participant_name)
        wanted_team = normalize_name(team_name)

        for record in snapshot.records:
            name_matches = normalize_name(record.participant_name) == wanted_name
            team_matches = normalize_name(record.team_name) == wanted_team
            if name_matches and team_matches:
                logger.info("Participant verified: %r / %r", participant_name, team_name)
                return record
            if name_matches:
                logger.debug("Name matched but team did not for %r (submitted team %r)", participant_name, team_name)

        logger.info("No matching participant found for %r / %r", participant_name, team_name)
        return None

    async def _read_assets(self) -> Tuple[bytes, Optional[bytes]]:
        try:
            if self.font_path:
                template_bytes, font_bytes = await asyncio.gather(
                    asyncio.to_thread(Path(self.template_path).read_bytes),
                    asyncio.to_thread(Path(self.font_path).read_bytes),
                )
                return template_bytes, font_bytes
            return await asyncio.to_thread(Path(self.template_path).read_bytes), None
        except OSError as e:
            raise TemplateError(f"Certificate assets could not be read: {e}") from e

    def _render(self, record: RosterRecord, template_bytes: bytes, font_bytes: Optional[bytes]) -> bytes:
        renderer = self._renderer_factory(
            template_bytes,
            font_bytes,
            color=self.color,
            resolution=self.resolution,
        )
        specs = build_layout(
            record,
            self.elements,
            renderer.page_size,
            renderer.text_width,
            max_width_ratio=self.max_width_ratio,
            strict_fit=self.strict_fit,
        )
        for spec in specs:
            renderer.draw_text(spec.text, spec.x, spec.y, spec.font_size)
        return renderer.to_pdf_bytes()

    async def render(self, record: RosterRecord) -> bytes:
        """Render the certificate PDF for an already verified record."""
        template_bytes, font_bytes = await self._read_assets()
        try:
            return await asyncio.to_thread(self._render, record, template_bytes, font_bytes)
        except TemplateError:
            raise
        except Exception as e:
            raise TemplateError(f"Rendering failed: {e}") from e

    async def verify_and_generate_certificate(self, participant_name: str, team_name: str) -> CertificateResult:
        """Verify the submitted details and return the certificate, never raising."""
        try:
            validate_input(participant_name, team_name)
            record = await self.verify(participant_name, team_name)
            if record is None:
                return CertificateResult(success=False, message=NOT_FOUND_MESSAGE)

            pdf_bytes = await self.render(record)
        except ValidationError as e:
            return CertificateResult(success=False, message=e.message)
        except DataSourceError:
            logger.exception("Roster could not be loaded")
            return CertificateResult(success=False, message=ROSTER_UNAVAILABLE_MESSAGE)
        except TemplateError:
            logger.exception("Certificate generation error")
            return CertificateResult(success=False, message=RENDER_FAILED_MESSAGE)
        except Exception:
            logger.exception("Unexpected error while generating certificate")
            return CertificateResult(success=False, message=RENDER_FAILED_MESSAGE)

        logger.info("Certificate generated for team %r", record.team_name)
        return CertificateResult(
            success=True,
            message=SUCCESS_MESSAGE,
            artifact=base64.b64encode(pdf_bytes).decode("ascii"),
        )
