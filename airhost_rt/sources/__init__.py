"""
Collaborator interfaces and their shipped implementations.
"""
from .interfaces import DashboardSource, IdentityVerifier, PricingDataSource

__all__ = ["DashboardSource", "IdentityVerifier", "PricingDataSource"]
