"""Decorator for logging simulation runs."""

import time
import uuid
from functools import wraps
from typing import Callable

from .logging_config import run_logger
from .types import SimulationConfig


def log_simulation_run(func: Callable) -> Callable:
    """
    Decorator that logs a simulation run's start, completion and failure.

    The decorated function must take a SimulationConfig argument and
    return a Results.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        config = kwargs.get("config")
        if config is None:
            config = next((arg for arg in args if isinstance(arg, SimulationConfig)), None)

        run_id = uuid.uuid4().hex[:12]
        start_time = time.time()
        base = {
            "run_id": run_id,
            "iterations": config.iterations if config else None,
            "turns": config.turns if config else None,
            "workers": config.workers if config else None,
        }

        run_logger.info(f"Run {func.__name__} started", extra={**base, "success": None})

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            execution_time_ms = int((time.time() - start_time) * 1000)
            run_logger.error(
                f"Run {func.__name__} failed: {e}",
                extra={
                    **base,
                    "execution_time_ms": execution_time_ms,
                    "success": False,
                    "error": f"{type(e).__name__}: {e}",
                },
            )
            raise

        execution_time_ms = int((time.time() - start_time) * 1000)
        run_logger.info(
            f"Run {func.__name__} completed",
            extra={
                **base,
                "execution_time_ms": execution_time_ms,
                "hands_kept": getattr(result, "hands_kept", None),
                "mulligans": getattr(result, "mulligans", None),
                "success": True,
            },
        )
        return result

    return wrapper
