"""Pytest configuration and fixtures."""

import asyncio
import threading

import pytest

from config import Config
from core.constants import DrawDefaults, DrawMode
from services import set_main_loop, run_coroutine_sync
from services.clock import VirtualClock
from services.draw_engine import DrawEngine
from services.entry_pool import EntryPool
from services.lottery import RandomSelector
from services.prizes import PrizeSequencer


@pytest.fixture
def clock():
    """Virtual clock so reveals finish instantly."""
    return VirtualClock()


@pytest.fixture
def selector():
    """Seeded selector for repeatable draws."""
    return RandomSelector(seed=1234)


@pytest.fixture
def make_engine(clock, selector):
    """Factory for engines wired to the virtual clock."""
    def _make(
        spec="1-50",
        prizes=DrawDefaults.PRIZES,
        winners_per_prize=1,
        mode=DrawMode.NUMBERS,
    ):
        return DrawEngine(
            pool=EntryPool.configure(spec, mode),
            prizes=PrizeSequencer.from_names(prizes),
            winners_per_prize=winners_per_prize,
            selector=selector,
            clock=clock,
            input_value=spec,
        )

    return _make


@pytest.fixture
def engine(make_engine):
    """Default engine: tickets 01-50, three prizes, one winner each."""
    return make_engine()


@pytest.fixture
def test_config(tmp_path):
    """Configuration pointing every folder at a temporary directory."""
    return Config(
        environment="testing",
        debug=False,
        web_host="127.0.0.1",
        web_port=5000,
        secret_key="test-secret",
        log_folder=str(tmp_path / "logs"),
        log_level="DEBUG",
        session_path=str(tmp_path / "session.json"),
        autosave=False,
        export_folder=str(tmp_path / "exports"),
        draw_title="Test Draw",
        default_entries="1-50",
        default_mode=DrawMode.NUMBERS,
        default_prizes=DrawDefaults.PRIZES,
        winners_per_prize=1,
        draw_seed=42,
    )


@pytest.fixture
def loop_thread():
    """Event loop running on a background thread, registered as the main loop."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    set_main_loop(loop)

    yield loop

    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5)
    loop.close()
    set_main_loop(None)


@pytest.fixture
def web_engine(loop_thread, test_config, clock):
    """Engine built from the test configuration, driven from the background loop."""
    engine = DrawEngine.from_config(test_config, clock=clock)
    yield engine
    run_coroutine_sync(engine.close(), timeout=5)


@pytest.fixture
def client(test_config, web_engine):
    """Flask test client bound to ``web_engine``."""
    from web import create_app

    app = create_app(test_config, engine=web_engine, testing=True)
    with app.test_client() as test_client:
        yield test_client
