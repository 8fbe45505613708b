"""
SDK for the sales tracker.

Provides the AI collaborator used for feedback sentiment and sales insight.
"""

from .insights import SalesInsightClient

__all__ = ["SalesInsightClient"]
