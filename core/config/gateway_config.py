#!/usr/bin/env python3
"""Billing gateway (Lago) configuration

Connection settings for the external billing engine. Built once at startup
and handed to the gateway client; never mutated afterwards.
"""
import os
from dataclasses import dataclass

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass(frozen=True)
class GatewayConfig:
    """External billing engine endpoint and credentials"""

    base_url: str = "http://localhost:3000"
    api_key: str = ""

    # Seconds. PDF rendering on the engine side can take minutes.
    timeout: float = 30.0
    pdf_timeout: float = 300.0

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url is required")
        if self.timeout <= 0 or self.pdf_timeout <= 0:
            raise ValueError("timeouts must be positive")

    @classmethod
    def from_env(cls) -> 'GatewayConfig':
        """Load gateway configuration from environment variables"""
        return cls(
            base_url=os.getenv("LAGO_BASE_URL", "http://localhost:3000").rstrip("/"),
            api_key=os.getenv("LAGO_API_KEY", ""),
            timeout=_float(os.getenv("LAGO_TIMEOUT", "30"), 30.0),
            pdf_timeout=_float(os.getenv("LAGO_PDF_TIMEOUT", "300"), 300.0),
        )
