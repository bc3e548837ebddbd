import asyncio

from quizcore.services.locks import KeyedLocks


async def test_same_key_is_serialized():
    locks = KeyedLocks()
    events: list[str] = []

    async def worker(name: str):
        async with locks.hold(("quiz", 1)):
            events.append(f"{name}:in")
            await asyncio.sleep(0.01)
            events.append(f"{name}:out")

    await asyncio.gather(worker("a"), worker("b"))
    assert events in (
        ["a:in", "a:out", "b:in", "b:out"],
        ["b:in", "b:out", "a:in", "a:out"],
    )
    assert len(locks) == 0


async def test_different_keys_do_not_block():
    locks = KeyedLocks()
    entered = asyncio.Event()

    async def first():
        async with locks.hold("a"):
            await asyncio.wait_for(entered.wait(), timeout=1)

    async def second():
        async with locks.hold("b"):
            entered.set()

    await asyncio.gather(first(), second())
    assert len(locks) == 0


async def test_lock_released_on_error():
    locks = KeyedLocks()
    try:
        async with locks.hold("k"):
            raise ValueError("boom")
    except ValueError:
        pass
    assert len(locks) == 0
    async with locks.hold("k"):
        assert len(locks) == 1
