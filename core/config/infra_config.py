#!/usr/bin/env python3
"""Messaging infrastructure configuration

NATS JetStream connection used to publish billing domain events.
"""
import os
from dataclasses import dataclass
from typing import List, Optional

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass(frozen=True)
class MessagingConfig:
    """NATS JetStream endpoint"""

    # ===========================================
    # NATS (native - port 4222)
    # ===========================================
    nats_host: str = "localhost"
    nats_port: int = 4222
    nats_url: Optional[str] = None
    nats_user: Optional[str] = None
    nats_password: Optional[str] = None
    connect_timeout: float = 5.0

    # Seconds to wait for the JetStream PubAck
    publish_timeout: float = 5.0

    @property
    def servers(self) -> List[str]:
        if self.nats_url:
            return [url.strip() for url in self.nats_url.split(",") if url.strip()]
        return [f"nats://{self.nats_host}:{self.nats_port}"]

    @classmethod
    def from_env(cls) -> 'MessagingConfig':
        """Load messaging config from environment"""
        return cls(
            nats_host=os.getenv("NATS_HOST", "localhost"),
            nats_port=_int(os.getenv("NATS_PORT", "4222"), 4222),
            nats_url=os.getenv("NATS_URL"),
            nats_user=os.getenv("NATS_USER"),
            nats_password=os.getenv("NATS_PASSWORD"),
            connect_timeout=_float(os.getenv("NATS_CONNECT_TIMEOUT", "5"), 5.0),
            publish_timeout=_float(os.getenv("NATS_PUBLISH_TIMEOUT", "5"), 5.0),
        )
