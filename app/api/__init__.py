"""API module"""
# Import all routers
from . import health, profitability, currency

__all__ = ["health", "profitability", "currency"]
