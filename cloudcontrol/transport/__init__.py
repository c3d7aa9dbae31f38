# cloudcontrol/transport/__init__.py
from cloudcontrol.transport.transport_base import BaseNodeClient, NodeResponse, ENDPOINTS
from cloudcontrol.transport.transport_http import HTTPNodeClient

__all__ = ["BaseNodeClient", "NodeResponse", "ENDPOINTS", "HTTPNodeClient"]
