"""Application initialization orchestrator."""

from __future__ import annotations

import asyncio
import os
from contextlib import suppress
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from aiohttp import web as aiohttp_web
from aiohttp_wsgi import WSGIHandler

from core.constants import EngineEvent
from core.logger import get_logger

if TYPE_CHECKING:
    from config import Config
    from services.draw_engine import DrawEngine
    from services.session_store import SessionStore

logger = get_logger(__name__)


class ApplicationInitializer:
    """Orchestrates application initialization and lifecycle."""

    def __init__(self, config: Optional["Config"] = None):
        if config is None:
            from config import load_config
            config = load_config()
        self.config = config
        self.engine: Optional["DrawEngine"] = None
        self.session_store: Optional["SessionStore"] = None
        self.web_runner = None
        self._stopped = asyncio.Event()

    async def initialize(self) -> None:
        """Initialize all application components."""
        self._prepare_folders()

        # Draw engine first; the web layer and autosave both depend on it
        self._init_engine()
        self._init_session_store()

        # Initialize web server
        await self._init_web_server()

    async def run(self) -> None:
        """Run the application until stopped."""
        try:
            logger.info("Draw engine ready: waiting for commands...")
            await self._stopped.wait()
        finally:
            await self.cleanup()

    def stop(self) -> None:
        self._stopped.set()

    async def cleanup(self) -> None:
        """Cleanup resources."""
        with suppress(Exception):
            if self.engine:
                await self.engine.close()
        if self.engine and self.session_store:
            from services.session_store import capture_session
            self.session_store.save(capture_session(self.engine))
            self.session_store.detach()
        with suppress(Exception):
            if self.web_runner:
                await self.web_runner.cleanup()
        logger.info("Shutdown complete")

    def _prepare_folders(self) -> None:
        for folder in (self.config.log_folder, self.config.export_folder):
            Path(folder).mkdir(parents=True, exist_ok=True)

    def _init_engine(self) -> None:
        """Create the draw engine from configuration."""
        from services.draw_engine import DrawEngine

        self.engine = DrawEngine.from_config(self.config)
        self.engine.events.subscribe(EngineEvent.ALL_PRIZES_COMPLETE, self._export_results)
        logger.info(
            f"Draw engine initialized: {self.engine.pool.total_count} entries, "
            f"{len(self.engine.prizes)} prizes, {self.engine.winners_per_prize} winner(s) per prize"
        )

    def _export_results(self) -> None:
        """Write the final winners CSV once every prize has been drawn."""
        from services.export import write_winners_csv

        write_winners_csv(self.engine.history, self.config.export_folder, self.engine.title)

    def _init_session_store(self) -> None:
        """Restore the last session and enable autosave."""
        from services.session_store import SessionStore

        self.session_store = SessionStore(self.config.session_path)
        if self.session_store.restore_into(self.engine):
            logger.info("Previous session restored")
        if self.config.autosave:
            self.session_store.attach(self.engine)

    async def _init_web_server(self) -> None:
        """Initialize web server."""
        from web import create_app

        flask_app = create_app(self.config, engine=self.engine)
        flask_app.config["SESSION_STORE"] = self.session_store

        # Flask runs in aiohttp-wsgi worker threads; engine calls hop back to this loop
        wsgi_handler = WSGIHandler(flask_app)

        aio_app = aiohttp_web.Application()
        aio_app.router.add_route("*", "/{path_info:.*}", wsgi_handler)

        self.web_runner = aiohttp_web.AppRunner(aio_app)
        await self.web_runner.setup()

        # Bind to PORT env var if present (Render/Heroku)
        effective_port = int(os.getenv("PORT", str(self.config.web_port)))
        effective_host = "0.0.0.0" if os.getenv("PORT") else self.config.web_host

        site = aiohttp_web.TCPSite(self.web_runner, effective_host, effective_port)
        await site.start()

        logger.info(f"Web server started on http://{effective_host}:{effective_port}")
        logger.info(f"Public board: http://{effective_host}:{effective_port}/api/public")
