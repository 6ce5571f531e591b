"""
ASGI entry point.

Run with:
    uvicorn asgi:app --reload

Mount application routers on ``app`` (or build your own with create_app());
every non-exempt route sits behind the Turnstile gate.
"""

from app import create_app

app = create_app()
