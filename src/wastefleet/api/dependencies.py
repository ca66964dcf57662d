"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from ..services.engine import CollectionEngine


def get_engine(request: Request) -> CollectionEngine:
    return request.app.state.engine
