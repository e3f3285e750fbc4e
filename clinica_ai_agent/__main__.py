"""
Entry point for running the application as a module.
"""

import uvicorn

from .config import get_settings


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "clinica_ai_agent.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
