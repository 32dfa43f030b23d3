"""Renderer configuration: all values from environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class QuoteConfig:
    """Immutable configuration loaded once at startup."""

    # Origin that "/uploads/..." style image paths are resolved against
    asset_origin: str = field(default_factory=lambda: os.getenv("ASSET_ORIGIN", "http://localhost:5000"))
    letterhead_url: str = field(default_factory=lambda: os.getenv("LETTERHEAD_URL", "/letterhead.png"))
    image_timeout: float = field(default_factory=lambda: float(os.getenv("IMAGE_TIMEOUT_SECONDS", "5.0")))

    api_key: str = field(default_factory=lambda: os.getenv("RENDER_API_KEY", ""))

    # Observability
    otel_endpoint: str = field(default_factory=lambda: os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def auth_enabled(self) -> bool:
        """True when the render endpoint requires an API key."""
        return bool(self.api_key)


config = QuoteConfig()
