"""
cordlink — async client for a push-event bot gateway.
"""

from cordlink.gateway.client import GatewayClient
from cordlink.gateway.protocol import Status
from cordlink.rest.http import RestResult

__version__ = "1.0.0"

__all__ = ["GatewayClient", "Status", "RestResult", "__version__"]
