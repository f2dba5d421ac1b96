"""Connectors module"""
from .frankfurter_client import FrankfurterAPIClient

__all__ = ["FrankfurterAPIClient"]
