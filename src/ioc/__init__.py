"""
Dependency injection container configuration using Dishka.
"""

from src.ioc.capability_provider import CapabilityProvider
from src.ioc.service_provider import ServiceProvider


class AppProvider(ServiceProvider):
    """Main dependency injection provider for the application."""
    pass


__all__ = ["AppProvider", "CapabilityProvider", "ServiceProvider"]
