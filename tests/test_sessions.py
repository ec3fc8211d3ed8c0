import asyncio

from sessions import SessionRegistry


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_get_or_create_reuses_known_session(fake_db) -> None:
    registry = SessionRegistry(ttl=60, clock=FakeClock())

    async def run():
        first = await registry.get_or_create(None)
        again = await registry.get_or_create(first.id)
        fresh = await registry.get_or_create("unknown-id")
        return first, again, fresh

    first, again, fresh = asyncio.run(run())

    assert again is first
    assert fresh.id not in {first.id, "unknown-id"}
    assert len(registry) == 2
    assert fake_db["stats"].docs["general"]["total_visits"] == 2


def test_idle_sessions_are_evicted_and_closed(fake_db) -> None:
    clock = FakeClock()
    registry = SessionRegistry(ttl=60, clock=clock)

    async def run():
        idle = await registry.get_or_create(None)
        idle.state.login_admin()
        panel = idle.admin_panel()
        clock.now += 30
        active = await registry.get_or_create(None)
        clock.now += 45
        await registry.get_or_create(active.id)
        return idle, panel, active

    idle, panel, active = asyncio.run(run())

    assert registry.get(idle.id) is None
    assert registry.get(active.id) is active
    assert len(registry) == 1
    assert idle.admin is None
    assert panel.sync not in idle.state._listeners


def test_zero_ttl_keeps_every_session(fake_db) -> None:
    clock = FakeClock()
    registry = SessionRegistry(ttl=0, clock=clock)

    async def run():
        session = await registry.get_or_create(None)
        clock.now += 10_000
        evicted = await registry.evict_idle()
        return session, evicted

    session, evicted = asyncio.run(run())

    assert evicted == 0
    assert registry.get(session.id) is session
