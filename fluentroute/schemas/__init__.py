"""
FluentRoute - Schemas Package
==============================

What:  Pydantic models shared across the package.

Schema Inventory:
    - envelope.py: Success / Failure result envelope
"""

from fluentroute.schemas.envelope import Envelope, Failure, Success

__all__ = ["Envelope", "Failure", "Success"]
