"""Reusable worker helpers for CLI commands."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

import click
import structlog

F = TypeVar("F", bound=Callable)


def worker_options(default_interval: int = 3600) -> Callable[[F], F]:
    """Click decorator that adds --loop and --interval."""

    def decorator(f: F) -> F:
        f = click.option("--loop", is_flag=True, help="Run continuously.")(f)
        f = click.option("--interval", default=default_interval, type=int, help="Seconds between loop iterations.")(f)
        return f

    return decorator


def run_loop(
    fn: Callable[[], object],
    *,
    loop: bool,
    interval: int,
    log: structlog.stdlib.BoundLogger,
    name: str,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Run fn once, or forever with ``loop``. Returns False if the last cycle failed.

    Errors are logged and the loop keeps going; the next cycle is the retry.
    """
    while True:
        ok = True
        try:
            result = fn()
            log.info(f"{name}.cycle_complete", result=result)
        except Exception:
            log.exception(f"{name}.error")
            ok = False

        if not loop:
            return ok
        log.info("sleeping", seconds=interval)
        sleep(interval)
