"""Device authorization flow for adding accounts"""

from .device_flow import FlowPhase, OAuthFlowState, OAuthDeviceFlow

__all__ = [
    "FlowPhase",
    "OAuthFlowState",
    "OAuthDeviceFlow",
]
