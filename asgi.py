"""
asgi.py -- ASGI entry point for Taskify.

Run with:  uvicorn asgi:app --reload
           taskify / python asgi.py   (binds 0.0.0.0 on PORT from Settings)
"""

import uvicorn

from api.main import app
from core.config import get_settings

__all__ = ["app", "main"]


def main() -> None:
    uvicorn.run("asgi:app", host="0.0.0.0", port=get_settings().port)  # noqa: S104 # nosec B104 -- container entry point


if __name__ == "__main__":
    main()
