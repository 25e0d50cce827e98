"""Backend entrypoint: `uvicorn backend.main:app`."""

from backend.api import create_app


app = create_app()
