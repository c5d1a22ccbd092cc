from __future__ import annotations
import threading
from concurrent.futures import CancelledError, Future
from typing import Any, Callable, List, Optional, Sequence, TypeVar

A = TypeVar("A")
B = TypeVar("B")


def _failure(fut: "Future[Any]") -> Optional[BaseException]:
    if fut.cancelled():
        return CancelledError()
    return fut.exception()


def then(source: "Future[A]", fn: Callable[[A], B]) -> "Future[B]":
    """Future of fn(source.result()); exceptions from either side propagate."""
    out: "Future[B]" = Future()

    def _done(fut: "Future[A]") -> None:
        exc = _failure(fut)
        if exc is not None:
            out.set_exception(exc)
            return
        try:
            out.set_result(fn(fut.result()))
        except Exception as e:
            out.set_exception(e)

    source.add_done_callback(_done)
    return out


def flat_then(source: "Future[A]", fn: Callable[[A], "Future[B]"]) -> "Future[B]":
    """Like then(), for an fn that itself returns a future."""
    out: "Future[B]" = Future()

    def _relay(inner: "Future[B]") -> None:
        exc = _failure(inner)
        if exc is not None:
            out.set_exception(exc)
        else:
            out.set_result(inner.result())

    def _done(fut: "Future[A]") -> None:
        exc = _failure(fut)
        if exc is not None:
            out.set_exception(exc)
            return
        try:
            inner = fn(fut.result())
        except Exception as e:
            out.set_exception(e)
            return
        inner.add_done_callback(_relay)

    source.add_done_callback(_done)
    return out


def gather(futures: Sequence["Future[Any]"]) -> "Future[List[Any]]":
    """
    Join: resolves with every result in input order once all are done,
    or fails with the first failure observed.
    """
    out: "Future[List[Any]]" = Future()
    if not futures:
        out.set_result([])
        return out

    lock = threading.Lock()
    remaining = [len(futures)]

    def _done(fut: "Future[Any]") -> None:
        exc = _failure(fut)
        with lock:
            if out.done():
                return
            if exc is not None:
                out.set_exception(exc)
                return
            remaining[0] -= 1
            if remaining[0]:
                return
            out.set_result([f.result() for f in futures])

    for fut in futures:
        fut.add_done_callback(_done)
    return out
