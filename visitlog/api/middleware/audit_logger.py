"""
Audit Logging Middleware

Logs every request that can change visit records or send reports,
with client host, HTTP method, path and response status.
"""

import logging
from datetime import datetime

from fastapi import Request

# Create dedicated audit logger
logger = logging.getLogger("audit")

AUDITED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


async def audit_log_middleware(request: Request, call_next):
    """
    Audit logging middleware

    Logs mutating API requests with:
    - client host
    - HTTP method
    - Request path
    - Response status
    - Timestamp
    """
    response = await call_next(request)

    if request.method in AUDITED_METHODS:
        client = request.client.host if request.client else "unknown"
        logger.info(
            f"API Request | "
            f"Client: {client} | "
            f"Method: {request.method} | "
            f"Path: {request.url.path} | "
            f"Status: {response.status_code} | "
            f"Time: {datetime.utcnow().isoformat()}"
        )

    return response
