"""
asgi.py -- ASGI entry point for CredGate.

Run with:  uvicorn asgi:app --reload

Kept separate from api/main.py so process managers and the test suite
import the same application object from one stable path.
"""

from api.main import app

__all__ = ["app"]
