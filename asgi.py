"""
asgi.py -- Process entry point for the Conduit identity service.

This is the ONLY module that builds the app at import time. Importing it
without JWT_SECRET in the environment (or .env) raises immediately, so the
server process cannot start unconfigured. Tests call api.main.create_app()
with explicit Settings instead of importing this module.

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app

app = create_app()
