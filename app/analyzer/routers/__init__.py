"""
Routers package for FastAPI endpoints.

Organized by domain:
- analyze: PDF upload and analysis
- health: Service health check
"""

from . import analyze, health

__all__ = ["analyze", "health"]
