"""App-wide CORS policy with per-path opt-outs."""

from __future__ import annotations

from collections.abc import Iterable

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class ScopedCORSMiddleware(CORSMiddleware):
    """``CORSMiddleware`` that leaves ``open_paths`` to their own route.

    Requests to an open path (preflights included) reach the application
    untouched, so the route answers them with its own headers whatever
    ``allow_origins`` is configured to.
    """

    def __init__(self, app: ASGIApp, *, open_paths: Iterable[str] = (), **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.open_paths = frozenset(p.rstrip("/") for p in open_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].rstrip("/") in self.open_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
