# Services package init
"""
FluentRoute - Services Layer
=============================

What:  Framework-independent helpers used by route handlers and callers.

Service Inventory:
    - responses.py:   Result envelope normalizer and httpx response wrapper
    - jwt_manager.py: HS256 token issuer/verifier returning envelopes
"""
