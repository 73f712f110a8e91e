"""HTTP transport to the clinical-records service."""

from clinirec.transport.gateway import GatewayResponse, TransportGateway

__all__ = ["GatewayResponse", "TransportGateway"]
