"""
Settings read from the environment (optionally via a .env file)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from teamcert.certificate_generator import DEFAULT_PDF_RESOLUTION, DEFAULT_TEXT_COLOR
from teamcert.layout import DEFAULT_MAX_WIDTH_RATIO
from teamcert.roster_cache import DEFAULT_TTL_SECONDS

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _as_abs(path_str: str) -> str:
    # Allow Windows-style env var paths (e.g., "data\\roster.xlsx") even on Linux.
    normalized = (path_str or "").replace("\\", "/")
    p = Path(normalized)
    if not p.is_absolute():
        p = PROJECT_ROOT / p
    return str(p)


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_color(color_hex: Optional[str], default: Tuple[int, int, int] = DEFAULT_TEXT_COLOR) -> Tuple[int, int, int]:
    color_hex = (color_hex or "").strip()
    if color_hex.startswith("#") and len(color_hex) == 7:
        try:
            return (int(color_hex[1:3], 16), int(color_hex[3:5], 16), int(color_hex[5:7], 16))
        except ValueError:
            return default
    return default


@dataclass(frozen=True)
class Settings:
    roster_path: str
    template_path: str
    font_path: Optional[str] = None
    cache_ttl_seconds: float = DEFAULT_TTL_SECONDS
    serve_stale_roster: bool = False
    include_organization: bool = True
    text_color: Tuple[int, int, int] = DEFAULT_TEXT_COLOR
    max_width_ratio: float = DEFAULT_MAX_WIDTH_RATIO
    layout_scale: float = 1.0
    strict_fit: bool = False
    pdf_resolution: float = DEFAULT_PDF_RESOLUTION
    log_level: str = "INFO"
    cors_allow_origins: Tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            load_dotenv()

        font_path = (os.getenv("CERT_FONT_PATH") or "").strip()
        origins_raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
        allow_origins: List[str] = [o.strip() for o in origins_raw.split(",") if o.strip()]

        return cls(
            roster_path=_as_abs(os.getenv("ROSTER_PATH", "data/roster.xlsx")),
            template_path=_as_abs(os.getenv("CERTIFICATE_TEMPLATE_IMAGE", "templates/certificate_template.png")),
            font_path=_as_abs(font_path) if font_path else None,
            cache_ttl_seconds=float(os.getenv("ROSTER_CACHE_TTL_SECONDS", str(DEFAULT_TTL_SECONDS))),
            serve_stale_roster=_as_bool(os.getenv("ROSTER_SERVE_STALE"), False),
            include_organization=_as_bool(os.getenv("CERT_INCLUDE_ORGANIZATION"), True),
            text_color=parse_color(os.getenv("CERT_TEXT_COLOR")),
            max_width_ratio=float(os.getenv("CERT_MAX_WIDTH_RATIO", str(DEFAULT_MAX_WIDTH_RATIO))),
            layout_scale=float(os.getenv("CERT_LAYOUT_SCALE", "1.0")),
            strict_fit=_as_bool(os.getenv("CERT_STRICT_FIT"), False),
            pdf_resolution=float(os.getenv("CERT_PDF_RESOLUTION", str(DEFAULT_PDF_RESOLUTION))),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            cors_allow_origins=tuple(allow_origins) if allow_origins else ("*",),
        )
