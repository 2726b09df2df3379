import logging

import pytest

from scopebind import Container, factory, module, scoped, single


@pytest.mark.asyncio
async def test_shutdown_runs_cleanups_in_reverse_creation_order():
    closed = []

    class Repo:
        def close(self):
            closed.append("repo")

    class Service:
        def __init__(self, repo):
            self.repo = repo

        def dispose(self):
            closed.append("service")

    c = Container()
    c.load(module(single(Repo), single(Service, deps=[Repo])))
    c.get(Service)

    await c.shutdown()

    assert closed == ["service", "repo"]


@pytest.mark.asyncio
async def test_on_close_hook_wins_over_auto_detection():
    closed = []

    class Cache:
        name = "cache"

        def close(self):
            closed.append("auto")

    c = Container()
    c.load(module(single(Cache, on_close=lambda cache: closed.append(f"manual:{cache.name}"))))
    c.get(Cache)

    await c.shutdown()

    assert closed == ["manual:cache"]


@pytest.mark.asyncio
async def test_auto_dispose_preference_order():
    called = []

    class Everything:
        def dispose(self):
            called.append("dispose")

        def close(self):
            called.append("close")

        def destroy(self):
            called.append("destroy")

    class CloseAndDestroy:
        def close(self):
            called.append("close")

        def destroy(self):
            called.append("destroy")

    c = Container()
    c.load(module(single(Everything), single(CloseAndDestroy)))
    c.get(Everything)
    c.get(CloseAndDestroy)

    await c.shutdown()

    assert called == ["close", "dispose"]


@pytest.mark.asyncio
async def test_async_cleanups_are_awaited():
    closed = []

    class Pool:
        async def aclose(self):
            closed.append("pool")

    async def close_conn(conn):
        closed.append("conn")

    c = Container()
    c.load(module(single(Pool), single("conn", value=object(), on_close=close_conn)))
    c.get(Pool)
    c.get("conn")

    await c.shutdown()

    assert closed == ["conn", "pool"]


@pytest.mark.asyncio
async def test_failing_cleanup_does_not_stop_the_others(caplog):
    closed = []

    class First:
        def close(self):
            closed.append("first")

    class Broken:
        def close(self):
            raise RuntimeError("boom")

    class Last:
        def close(self):
            closed.append("last")

    c = Container()
    c.load(module(single(First), single(Broken), single(Last)))
    c.get(First)
    c.get(Broken)
    c.get(Last)

    with caplog.at_level(logging.WARNING, logger="scopebind"):
        await c.shutdown()

    assert closed == ["last", "first"]
    assert "Cleanup of Broken failed" in caplog.text


@pytest.mark.asyncio
async def test_each_cleanup_runs_exactly_once():
    calls = []

    class Res:
        def close(self):
            calls.append(1)

    c = Container()
    c.load(module(single(Res)))
    c.get(Res)

    await c.shutdown()
    await c.shutdown()

    assert calls == [1]


@pytest.mark.asyncio
async def test_shutdown_clears_caches():
    class Res: ...

    c = Container()
    c.load(module(single(Res)))
    first = c.get(Res)

    await c.shutdown()

    assert c.get(Res) is not first


@pytest.mark.asyncio
async def test_factory_instances_are_not_disposed():
    calls = []

    class Presenter:
        def close(self):
            calls.append(1)

    c = Container()
    c.load(module(factory(Presenter)))
    c.get(Presenter)

    await c.shutdown()

    assert calls == []


@pytest.mark.asyncio
async def test_scope_end_disposes_only_its_scoped_instances():
    disposed = []

    class RequestCtx:
        def dispose(self):
            disposed.append(self)

    class Config:
        def close(self):
            disposed.append(self)

    c = Container()
    c.load(module(scoped(RequestCtx), single(Config)))

    s1 = c.begin_scope()
    s2 = c.begin_scope()
    a = s1.get(RequestCtx)
    b = s2.get(RequestCtx)
    config = s1.get(Config)

    await s1.end()
    assert disposed == [a]

    await s2.end()
    assert disposed == [a, b]

    assert c.get(Config) is config
    await c.shutdown()
    assert disposed == [a, b, config]


@pytest.mark.asyncio
async def test_scope_end_leaves_parent_scoped_cache_alone():
    class RequestCtx: ...

    c = Container()
    c.load(module(scoped(RequestCtx)))
    at_root = c.get(RequestCtx)

    scope = c.begin_scope()
    scope.get(RequestCtx)
    await scope.end()

    assert c.get(RequestCtx) is at_root


def test_reset_forgets_everything_without_cleanup():
    calls = []

    class Res:
        def close(self):
            calls.append(1)

    c = Container()
    c.load(module(single(Res)))
    c.get(Res)

    c.reset()

    assert calls == []
    assert c.get_provider(Res) is None
    assert c._disposables == []
