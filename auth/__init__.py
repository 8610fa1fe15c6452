"""auth/ -- Credential, session and CSRF core for authcore.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. Configuration arrives as constructor
arguments (see api/main.py create_app()). api/ imports from auth/, not the
other way around.
"""
