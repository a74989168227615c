"""
Waitress WSGI entry point for production deployment.

Usage::

    python wsgi.py

Waitress is a pure-Python WSGI server that runs natively on Windows
and Linux without requiring C compilation.
"""

import logging
import os

from waitress import serve

from assettrack import create_app

logger = logging.getLogger(__name__)

# Force production config when running via this entry point.
app = create_app(os.environ.get("FLASK_ENV", "production"))

if __name__ == "__main__":
    host = os.environ.get("WAITRESS_HOST", "127.0.0.1")
    port = int(os.environ.get("WAITRESS_PORT", "8080"))
    logger.info("Starting Waitress on %s:%d", host, port)
    serve(app, host=host, port=port)
