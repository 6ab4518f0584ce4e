"""HTTP entrypoint for the territory influence core.

The lifespan owns the :class:`ApiState`: it opens the database and wires the
ledger, query facade and decay manager on startup, starts the daily decay loop
when ``Settings.decay_enabled`` is set, and on shutdown stops the loop (letting
an in-flight run stop between territories) before disposing the engine.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from frontier_influence.api import routes
from frontier_influence.api.runtime import ApiState, build_state
from frontier_influence.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(
    *,
    state_factory: Callable[[], ApiState] = build_state,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the influence API; ``state_factory`` lets tests supply their own world."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state = state_factory()
        app.state.api_state = state
        state.start()
        logger.info("influence api ready (decay loop %s)", "on" if state.decay.is_running else "off")
        try:
            yield
        finally:
            await state.shutdown()
            logger.info("influence api stopped")

    app = FastAPI(title="Frontier Influence API", version="0.1.0", lifespan=lifespan)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )
    app.include_router(routes.router)
    return app


app = create_app()
