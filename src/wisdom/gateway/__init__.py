"""Client and wire types for the shared-wisdom gateway API."""

from .client import GatewayClient
from .types import Address, AddressDomain

__all__ = ["Address", "AddressDomain", "GatewayClient"]
