"""
Telnyx webhook receiver adapter.

A FastAPI endpoint that verifies Telnyx webhook signatures before
accepting events, deduplicates deliveries, and optionally forwards
verified events to a downstream service.
"""

__version__ = "0.1.0"
