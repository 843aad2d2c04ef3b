"""
Billing Service - Service Clients

Clients for the external systems the billing service forwards to
"""

from .lago_client import (
    GatewayFailure,
    GatewayFailureKind,
    GatewayResult,
    GatewaySuccess,
    LagoClient,
    RejectionReason,
)

__all__ = [
    "LagoClient",
    "GatewaySuccess",
    "GatewayFailure",
    "GatewayFailureKind",
    "GatewayResult",
    "RejectionReason",
]
