"""Load-mutate-save with bounded retry on concurrent modification."""

import time
from collections.abc import Callable
from pathlib import Path

from structlog.typing import FilteringBoundLogger

from provenant.exceptions import ConcurrentModificationError
from provenant.registry._models import Registry
from provenant.registry._store import load, save
from provenant.utils import ExponentialBackoff, create_null_logger

__all__ = ["DEFAULT_MAX_ATTEMPTS", "update_registry"]

DEFAULT_MAX_ATTEMPTS = 3


def update_registry(  # noqa: PLR0913
    path: Path | str,
    mutate: Callable[[Registry], Registry],
    *,
    root: Path | str | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: ExponentialBackoff | None = None,
    sleep: Callable[[float], None] = time.sleep,
    logger: FilteringBoundLogger | None = None,
) -> Registry:
    """Apply ``mutate`` to the registry at ``path`` and save the result.

    When another writer saves in between the load and the save, the registry
    is reloaded and ``mutate`` is applied again to the fresh value, so
    ``mutate`` must be a function of its argument only. Registry errors
    raised by ``mutate`` (a duplicate name, say) propagate immediately.

    Args:
        path: Location of the registry YAML file.
        mutate: Function returning the changed registry.
        root: Project root for relative artifact paths.
        max_attempts: Total number of load-mutate-save attempts.
        backoff: Delay policy between attempts.
        sleep: Function used to wait between attempts.
        logger: Optional logger.

    Returns:
        The saved registry.

    Raises:
        ConcurrentModificationError: If every attempt hit a conflict.
        ValueError: If ``max_attempts`` is less than 1.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be at least 1, got {max_attempts}"
        raise ValueError(msg)

    log = logger or create_null_logger()
    policy = backoff or ExponentialBackoff()

    attempt = 0
    while True:
        registry = load(path, root=root, logger=log)
        try:
            return save(mutate(registry), path, logger=log)
        except ConcurrentModificationError as e:
            attempt += 1
            if attempt >= max_attempts:
                log.error(
                    "registry_conflict_exhausted",
                    path=str(path),
                    attempts=attempt,
                )
                raise
            delay = policy.delay(attempt - 1)
            log.info(
                "registry_conflict_retry",
                path=str(path),
                attempt=attempt,
                actual_revision=e.actual_revision,
                delay=round(delay, 3),
            )
            sleep(delay)
