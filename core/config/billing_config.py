#!/usr/bin/env python3
"""Billing service main configuration

Combines all sub-configs and adds the service identity and billing defaults.
"""
import os
from dataclasses import dataclass, field

from .gateway_config import GatewayConfig
from .infra_config import MessagingConfig
from .logging_config import LoggingConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class BillingConfig:
    """Main configuration for the billing service"""

    # ===========================================
    # Service identity
    # ===========================================
    service_name: str = "billing_service"
    service_host: str = "0.0.0.0"
    service_port: int = 8216
    environment: str = "development"
    debug: bool = False

    # ===========================================
    # Billing defaults
    # ===========================================
    # ISO 4217 code applied when a payment request omits its currency
    default_currency: str = "MWK"

    # ===========================================
    # Sub-configurations
    # ===========================================
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    messaging: MessagingConfig = field(default_factory=MessagingConfig)

    @property
    def log_level(self) -> str:
        return self.logging.log_level

    @classmethod
    def from_env(cls) -> 'BillingConfig':
        """Load complete billing service configuration from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            service_name=os.getenv("SERVICE_NAME", "billing_service"),
            service_host=os.getenv("SERVICE_HOST", "0.0.0.0"),
            service_port=_int(os.getenv("SERVICE_PORT", "8216"), 8216),
            environment=env,
            debug=_bool(os.getenv("DEBUG", "false")),
            default_currency=os.getenv("DEFAULT_CURRENCY", "MWK").upper(),
            logging=LoggingConfig.from_env(),
            gateway=GatewayConfig.from_env(),
            messaging=MessagingConfig.from_env(),
        )
