"""
Disposal cascade for scopes being torn down.
"""

from typing import Any, List, Sequence, Tuple

import structlog

from scopekit.core.domain.capabilities import ResolvedInstance
from scopekit.shared.exceptions import DisposalError
from scopekit.shared.types import DisposalOrder

logger = structlog.get_logger(__name__)


def dispose_owned(
    owner: Any,
    resolved: Sequence[ResolvedInstance],
    order: DisposalOrder = DisposalOrder.REVERSE,
    scope: str = ""
) -> int:
    """
    Release every disposable instance owned by ``owner``.

    Entries owned by another scope are skipped. A failing ``dispose()`` does
    not stop the cascade; once every owned instance has been visited the
    first failure is raised.

    Args:
        owner: Scope whose instances are released
        resolved: Registry entries in creation order
        order: Reverse of creation (default) or creation order
        scope: Scope name bound to log events

    Returns:
        Number of instances disposed

    Raises:
        DisposalError: If any dispose() call raised
    """
    log = logger.bind(scope=scope)
    entries = sorted(resolved, key=lambda entry: entry.sequence, reverse=order == DisposalOrder.REVERSE)

    disposed = 0
    failures: List[Tuple[ResolvedInstance, Exception]] = []

    for entry in entries:
        if entry.owner is not owner or not entry.disposable:
            continue

        log.info("Disposing dependency", dependency=entry.name)
        try:
            entry.value.dispose()
        except Exception as e:
            log.error("Disposal failed", dependency=entry.name, error=str(e))
            failures.append((entry, e))
        else:
            disposed += 1

    if failures:
        entry, error = failures[0]
        raise DisposalError(entry.name, error, errors=[failure for _, failure in failures]) from error

    return disposed
