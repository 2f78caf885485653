"""auth/ -- Identity, credential, and session package for the Conduit API.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. Configuration values (signing secret,
bcrypt cost, token lifetime) are injected by api/main.py at startup.
api/ imports from auth/, not the other way around.
"""
