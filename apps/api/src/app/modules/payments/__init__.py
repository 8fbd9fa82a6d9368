"""
Payments Module

Claimed payment transactions: students record a TRX ID and amount,
administrators approve or reject after checking them.
"""

from .router import router

__all__ = ["router"]
