"""CORS middleware configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fastapi import FastAPI

_ALLOWED_METHODS = ["GET", "POST", "DELETE"]


def setup_cors(app: FastAPI, origins: Sequence[str] = ()) -> None:
    """Let the wallet UI call the API from its own origin.

    With explicit *origins* credentials are allowed; without any, every
    origin is accepted and credentials are not.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins) or ["*"],
        allow_credentials=bool(origins),
        allow_methods=_ALLOWED_METHODS,
        allow_headers=["content-type"],
    )
