"""Unit tests for the DrawEngine orchestrator."""

import asyncio
from dataclasses import replace

import pytest

from core.constants import DrawDefaults, DrawMode, DrawState, EngineEvent, RevealPhase
from core.exceptions import (
    ConfigurationError,
    EmptyHistoryError,
    ExhaustedPoolError,
    InvalidSpecError,
    PrizesCompleteError,
    SessionError,
)
from services.draw_engine import DrawEngine
from services.entry_pool import EntryPool
from services.history import DrawBatch
from services.prizes import PrizeSequencer


async def let_reveal_start(rounds=5):
    for _ in range(rounds):
        await asyncio.sleep(0)


def test_initial_snapshot(engine):
    """Test the idle engine read model."""
    snapshot = engine.snapshot()
    assert snapshot.state is DrawState.IDLE
    assert snapshot.phase is None
    assert snapshot.display_value == "01"
    assert snapshot.current_prize_name == "3rd Prize"
    assert snapshot.remaining_count == snapshot.total_count == 50
    assert snapshot.digit_width == 2
    assert snapshot.history == ()
    assert not snapshot.all_prizes_drawn

    data = snapshot.to_dict()
    assert data["state"] == "idle"
    assert data["mode"] == "numbers"
    assert [prize["name"] for prize in data["prizes"]] == list(DrawDefaults.PRIZES)


@pytest.mark.asyncio
async def test_full_draw_awards_every_prize_in_order(engine):
    """Test 50 entries and 3 prizes: three batches, then rejection."""
    drawn = []
    for expected_prize in DrawDefaults.PRIZES:
        assert engine.current_prize_name() == expected_prize
        batch = await engine.draw_next()
        assert batch.prize_name == expected_prize
        assert len(batch.entries) == 1
        assert engine.display_value == batch.entries[-1]
        drawn.extend(batch.entries)

    assert len(set(drawn)) == 3
    assert engine.pool.remaining_count == 47
    assert not set(drawn) & set(engine.pool.remaining)
    assert engine.current_prize_name() == DrawDefaults.ALL_PRIZES_DRAWN
    assert engine.snapshot().all_prizes_drawn
    assert engine.state is DrawState.IDLE

    with pytest.raises(PrizesCompleteError, match="All prizes have been awarded"):
        await engine.draw_next()
    assert engine.pool.remaining_count == 47


@pytest.mark.asyncio
async def test_batch_capped_by_remaining_entries(make_engine):
    """Test 3 entries with 5 winners per prize."""
    engine = make_engine(spec="1-3", winners_per_prize=5)
    batch = await engine.draw_next()
    assert sorted(batch.entries) == ["1", "2", "3"]
    assert engine.pool.is_exhausted

    # Exhaustion is reported before the remaining prizes
    with pytest.raises(ExhaustedPoolError, match="All entries have been drawn"):
        await engine.draw_next()


@pytest.mark.asyncio
async def test_multiple_winners_per_prize(make_engine):
    """Test every winner in a batch is distinct and removed."""
    engine = make_engine(winners_per_prize=4)
    batch = await engine.draw_next()
    assert len(set(batch.entries)) == 4
    assert engine.pool.remaining_count == 46
    for entry in batch.entries:
        assert entry not in engine.pool


def test_undo_with_empty_history(engine):
    """Test undo before any draw."""
    with pytest.raises(EmptyHistoryError, match="no draw to undo"):
        engine.undo()
    assert engine.state is DrawState.IDLE


@pytest.mark.asyncio
async def test_undo_is_inverse_of_draw(make_engine):
    """Test undo restores the pool and the prize pointer."""
    engine = make_engine(winners_per_prize=3)
    before = engine.pool.remaining
    batch = await engine.draw_next()

    undone = engine.undo()
    assert undone == batch
    assert engine.pool.remaining == before
    assert len(engine.history) == 0
    assert engine.current_prize_name() == DrawDefaults.PRIZES[0]
    assert engine.display_value == batch.entries[0]


@pytest.mark.asyncio
async def test_draw_while_in_flight_is_ignored(engine):
    """Test a second draw request during a reveal is a no-op."""
    first = asyncio.ensure_future(engine.draw_next())
    await let_reveal_start()
    assert not engine.is_idle

    assert await engine.draw_next() is None
    batch = await first
    assert len(engine.history) == 1
    assert engine.history.last == batch
    assert engine.pool.remaining_count == 49


@pytest.mark.asyncio
async def test_draw_taking_last_entries_reports_exhaustion(make_engine):
    """Test a request made while the last entries are revealing is rejected, not ignored."""
    engine = make_engine(spec="1-2", winners_per_prize=2)
    first = asyncio.ensure_future(engine.draw_next())
    await let_reveal_start()
    assert not engine.is_idle
    assert engine.pool.is_exhausted

    with pytest.raises(ExhaustedPoolError):
        engine.begin_draw()
    batch = await first
    assert sorted(batch.entries) == ["1", "2"]
    assert len(engine.history) == 1


@pytest.mark.asyncio
async def test_undo_during_reveal_is_ignored(engine):
    """Test undo requests while a later draw is revealing."""
    await engine.draw_next()
    second = asyncio.ensure_future(engine.draw_next())
    await let_reveal_start()

    assert engine.undo() is None
    await second
    assert len(engine.history) == 2


def test_begin_draw_is_synchronous(engine):
    """Test winners leave the pool before the reveal runs."""
    loop = asyncio.new_event_loop()
    try:
        async def start():
            task = engine.begin_draw()
            assert engine.state is DrawState.SELECTING
            assert engine.pool.remaining_count == 49
            assert engine.begin_draw() is None
            return await task

        batch = loop.run_until_complete(start())
    finally:
        loop.close()
    assert batch.prize_name == "3rd Prize"


@pytest.mark.asyncio
async def test_reset_cancels_reveal(engine):
    """Test reset during a reveal: nothing recorded, pool refilled."""
    await engine.draw_next()
    pending = asyncio.ensure_future(engine.draw_next())
    await let_reveal_start()
    assert engine.state is DrawState.REVEALING

    engine.reset()
    assert await pending is None
    assert engine.state is DrawState.IDLE
    assert engine.phase is None
    assert len(engine.history) == 0
    assert engine.pool.remaining_count == 50
    assert engine.display_value == "01"


@pytest.mark.asyncio
async def test_cancel_draw_keeps_entries_removed(engine):
    """Test a cancelled reveal is not recorded and its winner stays drawn."""
    pending = asyncio.ensure_future(engine.draw_next())
    await let_reveal_start()

    assert engine.cancel_draw() is True
    assert await pending is None
    assert engine.is_idle
    assert len(engine.history) == 0
    assert engine.pool.remaining_count == 49
    assert engine.cancel_draw() is False


@pytest.mark.asyncio
async def test_cancelling_caller_discards_draw(engine):
    """Test cancelling the awaiting task stops the reveal."""
    pending = asyncio.ensure_future(engine.draw_next())
    await let_reveal_start()
    pending.cancel()
    with pytest.raises(asyncio.CancelledError):
        await pending
    assert engine.is_idle
    assert len(engine.history) == 0


@pytest.mark.asyncio
async def test_reveal_phases_reported(engine):
    """Test display changes and phases during a reveal."""
    displays = []
    ticks = []
    engine.events.subscribe(EngineEvent.DISPLAY_CHANGED, displays.append)
    engine.events.subscribe(EngineEvent.TICK, ticks.append)

    batch = await engine.draw_next()
    assert displays[-1] == batch.entries[0]
    assert 0 < len(ticks) < len(displays)
    assert all(len(value) == 2 for value in displays)


@pytest.mark.asyncio
async def test_commit_and_completion_events(make_engine):
    """Test batch_committed carries the final flag and completion fires once."""
    engine = make_engine(prizes=["Runner-up", "Grand Prize"])
    committed = []
    completed = []
    states = []
    engine.events.subscribe(EngineEvent.BATCH_COMMITTED, lambda batch, final: committed.append((batch, final)))
    engine.events.subscribe(EngineEvent.ALL_PRIZES_COMPLETE, lambda: completed.append(True))
    engine.events.subscribe(EngineEvent.STATE_CHANGED, lambda snapshot: states.append(snapshot.state))

    await engine.draw_next()
    assert completed == []
    await engine.draw_next()

    assert [(batch.prize_name, final) for batch, final in committed] == [
        ("Runner-up", False),
        ("Grand Prize", True),
    ]
    assert completed == [True]
    assert states[:4] == [
        DrawState.SELECTING,
        DrawState.REVEALING,
        DrawState.COMMITTING,
        DrawState.IDLE,
    ]


@pytest.mark.asyncio
async def test_final_prize_reveal_fakes_out(make_engine):
    """Test the grand prize reveal passes through the fake-out phase."""
    engine = make_engine(prizes=["Grand Prize"])
    phases = set()
    engine.events.subscribe(EngineEvent.DISPLAY_CHANGED, lambda value: phases.add(engine.phase))
    await engine.draw_next()
    assert RevealPhase.FAKE_OUT in phases


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_break_draw(engine):
    """Test handler errors are logged and swallowed by the bus."""
    def broken(*args):
        raise RuntimeError("display offline")

    engine.events.subscribe(EngineEvent.TICK, broken)
    engine.events.subscribe(EngineEvent.BATCH_COMMITTED, broken)
    batch = await engine.draw_next()
    assert engine.history.last == batch


@pytest.mark.asyncio
async def test_async_subscriber_is_awaited_on_close(engine):
    """Test coroutine handlers are scheduled and drained."""
    seen = []

    async def record(batch, final):
        await asyncio.sleep(0)
        seen.append(batch.prize_name)

    engine.events.subscribe(EngineEvent.BATCH_COMMITTED, record)
    await engine.draw_next()
    await engine.close()
    assert seen == ["3rd Prize"]


@pytest.mark.asyncio
async def test_names_mode_draw(make_engine):
    """Test drawing names."""
    engine = make_engine(spec="Ann, Bob, Cid, Dee", mode=DrawMode.NAMES, winners_per_prize=2)
    batch = await engine.draw_next()
    assert set(batch.entries) <= {"Ann", "Bob", "Cid", "Dee"}
    assert engine.snapshot().digit_width == 0
    assert engine.display_value == batch.entries[-1]


def test_configure_entries_invalid_keeps_state(engine):
    """Test a rejected specification leaves the pool alone."""
    pool = engine.pool
    with pytest.raises(InvalidSpecError):
        engine.configure_entries("5-3")
    assert engine.pool is pool
    assert engine.input_value == "1-50"


@pytest.mark.asyncio
async def test_configure_entries_resets_draw(engine):
    """Test a new pool clears the history."""
    await engine.draw_next()
    engine.configure_entries("1-500")
    assert len(engine.history) == 0
    assert engine.pool.total_count == 500
    assert engine.display_value == "001"
    assert engine.input_value == "1-500"


def test_configure_entries_switches_mode(engine):
    """Test configuring names on a numbers engine."""
    engine.configure_entries("Ann, Bob", mode=DrawMode.NAMES)
    assert engine.mode is DrawMode.NAMES
    assert engine.display_value == "Ann"


def test_configure_entries_from_lines(engine):
    """Test importing entries from file lines."""
    pool = engine.configure_entries_from_lines(["12", "7", "12", ""])
    assert pool.entries == ("12", "07")
    assert engine.input_value == "12, 07"


@pytest.mark.asyncio
async def test_configure_prizes(engine):
    """Test replacing prizes keeps committed draws."""
    await engine.draw_next()
    engine.configure_prizes(["Mug", "Bike"])
    assert engine.current_prize_name() == "Bike"

    with pytest.raises(InvalidSpecError):
        engine.configure_prizes([])
    with pytest.raises(InvalidSpecError):
        engine.configure_prizes(["   "])
    assert [prize.name for prize in engine.prizes.prizes] == ["Mug", "Bike"]


@pytest.mark.asyncio
async def test_configure_prizes_shorter_than_history(make_engine):
    """Test prizes cannot drop below the number already drawn."""
    engine = make_engine()
    await engine.draw_next()
    await engine.draw_next()
    with pytest.raises(InvalidSpecError):
        engine.configure_prizes(["Only"])


@pytest.mark.parametrize("count", [0, -2, 1.5, True, "3", None])
def test_set_winners_per_prize_rejects_invalid(engine, count):
    """Test winners per prize must be a positive integer."""
    with pytest.raises(InvalidSpecError):
        engine.set_winners_per_prize(count)
    assert engine.winners_per_prize == 1


def test_set_winners_per_prize(engine):
    """Test changing winners per prize."""
    engine.set_winners_per_prize(3)
    assert engine.snapshot().winners_per_prize == 3


def test_from_config(test_config):
    """Test building the engine from configuration."""
    engine = DrawEngine.from_config(test_config)
    assert engine.pool.total_count == 50
    assert engine.title == "Test Draw"
    assert engine.selector.seed == 42


def test_from_config_rejects_bad_defaults(test_config):
    """Test invalid default entries surface as a configuration error."""
    with pytest.raises(ConfigurationError):
        DrawEngine.from_config(replace(test_config, default_entries="9-1"))


def test_restore_state_validates_history(engine):
    """Test inconsistent saved state is rejected."""
    pool = EntryPool(("1", "2", "3"), mode=DrawMode.NUMBERS, digit_width=1, remaining=("1", "2"))
    prizes = PrizeSequencer.from_names(["A", "B"])

    with pytest.raises(SessionError):
        engine.restore_state(pool, prizes, [DrawBatch("A", ("2",))], 1)
    with pytest.raises(SessionError):
        engine.restore_state(pool, prizes, [DrawBatch("A", ("9",))], 1)
    with pytest.raises(SessionError):
        engine.restore_state(pool, prizes, [DrawBatch("A", ("3",)), DrawBatch("B", ("3",))], 1)
    with pytest.raises(SessionError):
        engine.restore_state(pool, PrizeSequencer.from_names(["A"]), [DrawBatch("A", ("3",)), DrawBatch("B", ("1",))], 1)

    engine.restore_state(pool, prizes, [DrawBatch("A", ("3",))], 2, input_value="1-3", title="Gala")
    assert engine.current_prize_name() == "B"
    assert engine.winners_per_prize == 2
    assert engine.title == "Gala"
    assert engine.display_value == "1"
