"""
API module for the visit log

Provides REST endpoints for front-desk and back-office clients
"""

from visitlog.api.server import create_app

__all__ = [
    "create_app",
]
