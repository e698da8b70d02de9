"""Adapters for the case management backend.

Keep these modules small and testable:
- No FastAPI request/response objects
- Pure IO + payload normalization
"""
