"""Nonprofit and researcher collaboration platform API."""
