"""
API Server Entry Point

Starts the FastAPI server for the visit log
"""

import logging

import uvicorn

from visitlog.api.server import create_app
from visitlog.config.settings import get_settings


def main():
    """Start API server"""
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app(settings=settings)

    print(f"\n🚀 Starting visit log API on {settings.api_host}:{settings.api_port}")
    print(f"📖 API docs: http://{settings.api_host}:{settings.api_port}/docs")
    print(f"🗄️  Visit store backend: {settings.visit_store_backend}\n")

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
