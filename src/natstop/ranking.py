"""Ordering of the connection list."""

from collections.abc import Callable, Iterable

from natstop.models import ConnectionInfo, SortKey

# Descending keys are negated so sorted() stays stable on ties.
SORT_FUNCTIONS: dict[SortKey, Callable[[ConnectionInfo], int]] = {
    SortKey.CID: lambda c: c.cid,
    SortKey.SUBS: lambda c: -c.subscriptions,
    SortKey.PENDING: lambda c: -c.pending_bytes,
    SortKey.MSGS_TO: lambda c: -c.out_msgs,
    SortKey.MSGS_FROM: lambda c: -c.in_msgs,
    SortKey.BYTES_TO: lambda c: -c.out_bytes,
    SortKey.BYTES_FROM: lambda c: -c.in_bytes,
}


def rank_connections(
    connections: Iterable[ConnectionInfo],
    key: SortKey | str,
) -> list[ConnectionInfo]:
    """
    Return the connections ordered by key.

    The cid key sorts ascending, every other key descending. Connections
    with equal keys keep their input order. An unrecognised key returns
    the input order unchanged.
    """
    if isinstance(key, str):
        try:
            key = SortKey.parse(key)
        except ValueError:
            return list(connections)
    key_func = SORT_FUNCTIONS.get(key)
    if key_func is None:
        return list(connections)
    return sorted(connections, key=key_func)
