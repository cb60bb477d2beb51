"""
asgi.py -- ASGI entry point for the User Login API.

Run with:  uvicorn asgi:app --reload
           python main.py serve

api/main.py owns the application; this module only re-exports it so the
server command stays stable if assembly moves.
"""

from api.main import app

__all__ = ["app"]
