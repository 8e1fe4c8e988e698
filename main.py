"""
ASGI entrypoint.

Run: uvicorn main:app
"""

from api.main import create_app
from core.config import settings

app = create_app(settings)
