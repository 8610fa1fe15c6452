"""
asgi.py -- Process entry point for authcore.

The only place that builds Settings from the environment. Everything below
receives that one Settings instance from create_app().

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app
from core.config import get_settings

app = create_app(get_settings())
