"""Bounded fan-out helpers.

Every sub-operation of a fan-out is started immediately but runs under a
shared semaphore, so at most ``max_concurrent`` of them are in flight at once.
The aggregate result is produced only after every sub-operation has settled.
"""
import asyncio
import typing as t

T = t.TypeVar("T")


async def _run_limited(
    operation: t.Awaitable[T],
    semaphore: t.Optional[asyncio.Semaphore],
) -> T:
    """Await a single operation, holding the semaphore while it runs.

    Args:
        operation: The awaitable to run
        semaphore: Optional semaphore for concurrency limiting

    Returns:
        The result of the operation
    """
    # Acquire semaphore if concurrency limiting is enabled
    if semaphore:
        await semaphore.acquire()

    try:
        return await operation
    finally:
        if semaphore:
            semaphore.release()


async def gather_settled(
    operations: t.Iterable[t.Awaitable[T]],
    max_concurrent: t.Optional[int] = None,
) -> list[t.Union[T, BaseException]]:
    """Run operations concurrently and wait for all of them.

    A failing operation does not cancel or fail the others; its exception is
    returned in its slot instead of a value.

    Args:
        operations: The awaitables to run
        max_concurrent: Optional limit on operations in flight at once.
                        If None (default), all run in parallel.

    Returns:
        One entry per operation, in submission order: the value or the exception
    """
    semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None
    tasks = [_run_limited(operation, semaphore) for operation in operations]
    return await asyncio.gather(*tasks, return_exceptions=True)


async def gather_all_or_raise(
    operations: t.Iterable[t.Awaitable[T]],
    max_concurrent: t.Optional[int] = None,
) -> list[T]:
    """Run operations concurrently, wait for all, then fail if any failed.

    Operations already issued are never cancelled or rolled back: every one of
    them gets to finish before the first failure (in submission order) is
    raised.

    Raises:
        Exception: The first failure, after every operation has settled
    """
    results = await gather_settled(operations, max_concurrent=max_concurrent)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return t.cast(list[T], results)
