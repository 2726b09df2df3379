import asyncio

import pytest

from scopebind import (
    AsyncProviderError,
    CircularDependencyError,
    Container,
    factory,
    module,
    scoped,
    single,
)


class Conn:
    def __init__(self, url):
        self.url = url


class Db:
    def __init__(self, conn):
        self.conn = conn


async def open_conn():
    await asyncio.sleep(0)
    return Conn("memory://")


async def open_db(ctx):
    return Db(await ctx.get_async(Conn))


@pytest.fixture
def container():
    c = Container()
    c.load(module(single(Conn, open_conn), single(Db, open_db)))
    return c


@pytest.mark.asyncio
async def test_get_async_awaits_factories(container):
    db = await container.get_async(Db)

    assert isinstance(db, Db)
    assert db.conn.url == "memory://"
    assert db.conn is await container.get_async(Conn)


@pytest.mark.asyncio
async def test_get_async_caches_singles(container):
    assert await container.get_async(Db) is await container.get_async(Db)


@pytest.mark.asyncio
async def test_sync_get_returns_single_built_asynchronously(container):
    db = await container.get_async(Db)
    assert container.get(Db) is db


def test_sync_get_against_async_factory_raises(container):
    with pytest.raises(AsyncProviderError, match="Use get_async"):
        container.get(Db)


def test_sync_get_against_async_factory_does_not_leave_key_in_flight(container):
    with pytest.raises(AsyncProviderError):
        container.get(Conn)
    with pytest.raises(AsyncProviderError):
        container.get(Conn)


@pytest.mark.asyncio
async def test_get_async_resolves_sync_providers_and_explicit_deps():
    class Repo: ...

    class Service:
        def __init__(self, repo, conn):
            self.repo = repo
            self.conn = conn

    c = Container()
    c.load(
        module(
            single(Repo),
            single(Conn, open_conn),
            factory(Service, deps=[Repo, Conn]),
        )
    )

    svc = await c.get_async(Service)
    assert svc.repo is c.get(Repo)
    assert svc.conn.url == "memory://"
    assert await c.get_async(Service) is not svc


@pytest.mark.asyncio
async def test_get_async_falls_back_to_unregistered_classes():
    class Repo: ...

    class Service:
        def __init__(self, repo: Repo):
            self.repo = repo

    svc = await Container().get_async(Service)
    assert isinstance(svc.repo, Repo)


@pytest.mark.asyncio
async def test_get_async_falls_back_for_qualified_requests():
    class Repo: ...

    assert isinstance(await Container().get_async(Repo, "primary"), Repo)


@pytest.mark.asyncio
async def test_get_async_returns_awaitable_literal_value_unawaited():
    async def later():
        return 1

    pending = asyncio.ensure_future(later())
    c = Container()
    c.register("pending", value=pending)

    assert await c.get_async("pending") is pending
    assert await pending == 1


@pytest.mark.asyncio
async def test_get_async_detects_cycles():
    c = Container()
    c.register("a", lambda ctx: ctx.get_async("b"))
    c.register("b", lambda ctx: ctx.get_async("a"))

    with pytest.raises(CircularDependencyError):
        await c.get_async("a")


@pytest.mark.asyncio
async def test_scoped_async_factory_in_scope():
    class Session: ...

    async def open_session():
        return Session()

    c = Container()
    c.load(module(scoped(Session, open_session)))

    async with c.begin_scope() as s1:
        first = await s1.get_async(Session)
        assert await s1.get_async(Session) is first
    async with c.begin_scope() as s2:
        assert await s2.get_async(Session) is not first


@pytest.mark.asyncio
async def test_concurrent_request_for_in_flight_key_is_reported_as_circular():
    gate = asyncio.Event()

    async def slow():
        await gate.wait()
        return object()

    c = Container()
    c.register("slow", slow)

    first = asyncio.ensure_future(c.get_async("slow"))
    await asyncio.sleep(0)
    with pytest.raises(CircularDependencyError):
        await c.get_async("slow")

    gate.set()
    assert await first is c.get("slow")
