"""
ASGI entry point: ``uvicorn clinica_ai_agent.main:app``.
"""

from .api import create_app


app = create_app()
