#!/usr/bin/env python3
"""Modular configuration system for the billing service

Configuration hierarchy:
- gateway_config: External billing engine (Lago) endpoint and credentials
- infra_config: NATS JetStream connection and billing stream
- logging_config: Logging configuration
- billing_config: Service identity, billing defaults, and the above
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig
from .gateway_config import GatewayConfig
from .infra_config import MessagingConfig
from .billing_config import BillingConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)

# Create global settings instance
settings = BillingConfig.from_env()

def get_settings() -> BillingConfig:
    """Get global settings instance"""
    return settings

def reload_settings() -> BillingConfig:
    """Reload settings from environment"""
    global settings
    settings = BillingConfig.from_env()
    return settings

__all__ = [
    # Main config
    'BillingConfig',
    'get_settings',
    'reload_settings',
    'settings',
    # Sub-configs
    'LoggingConfig',
    'GatewayConfig',
    'MessagingConfig',
]
