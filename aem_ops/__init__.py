"""Resilient adapters for AEM administrative APIs."""

__version__ = "0.1.0"
