"""
Waitress WSGI entry point for the Asset Tracker API.

Usage::

    python wsgi.py

``WAITRESS_HOST``, ``WAITRESS_PORT`` and ``WAITRESS_THREADS`` control
the listener.  ``FLASK_ENV`` defaults to ``production`` here, so
``SECRET_KEY`` and a non-SQLite ``DATABASE_URL`` must be set.
"""

import logging
import os

from waitress import serve

from asset_tracker import create_app

logger = logging.getLogger(__name__)

app = create_app(os.environ.get("FLASK_ENV", "production"))

if __name__ == "__main__":
    host = os.environ.get("WAITRESS_HOST", "127.0.0.1")
    port = int(os.environ.get("WAITRESS_PORT", "8080"))
    threads = int(os.environ.get("WAITRESS_THREADS", "4"))
    logger.info("Serving asset tracker on %s:%d with %d threads", host, port, threads)
    serve(app, host=host, port=port, threads=threads)
