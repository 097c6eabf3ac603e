import asyncio

from tienda.middleware.idempotency import _KeyedLocks


def test_keyed_locks_serialize_and_forget():
    locks = _KeyedLocks()
    order = []

    async def worker(name):
        await locks.acquire("k")
        try:
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")
        finally:
            locks.release("k")

    async def main():
        await asyncio.gather(worker("a"), worker("b"), worker("c"))
        return len(locks)

    assert asyncio.run(main()) == 0
    # Nunca dos dentro a la vez con la misma clave
    assert all(order[i].endswith("-in") and order[i + 1].endswith("-out") for i in range(0, len(order), 2))


def test_cancelled_waiter_does_not_leak():
    locks = _KeyedLocks()

    async def main():
        await locks.acquire("k")
        waiter = asyncio.ensure_future(locks.acquire("k"))
        await asyncio.sleep(0)
        waiter.cancel()
        try:
            await waiter
        except asyncio.CancelledError:
            pass
        locks.release("k")
        return len(locks)

    assert asyncio.run(main()) == 0
