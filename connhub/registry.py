"""Registry of open connections keyed by endpoint address, with fan-out dispatch."""

import threading
from typing import Any, Callable, Iterable, Iterator

from connhub.logging import logger
from connhub.metrics import (
    registry_connections_registered,
    registry_disconnects_total,
    registry_dispatch_failures_total,
    registry_dispatch_skipped_total,
    registry_dispatch_total,
)
from connhub.protocols import ConnectionHandle


def keys_of(handles: Iterable[ConnectionHandle]) -> set[str]:
    """
    Build a multicast exclusion set from handle objects.

    Args:
        handles: Handles whose keys should be excluded.

    Returns:
        Set of the handles' non-empty keys.
    """
    return {key for key in (handle.key() for handle in handles) if key}


class ConnectionRegistry:
    """
    Registry of open connections.

    Maps each connection's key to its handle and lets callers address one,
    many or all connections without holding individual references. A single
    lock guards the mapping; it is never held while a handle's send or
    disconnect runs. Dispatch works on a snapshot taken under the lock.

    Handles are never evicted automatically: a handle whose send fails stays
    registered until it is unregistered or disconnected explicitly.
    """

    def __init__(self, clear_on_disconnect_all: bool = True) -> None:
        """
        Initializes an empty registry.

        Args:
            clear_on_disconnect_all: Whether disconnect_all() also removes
                the disconnected handles from the registry, matching
                disconnect(). With False the entries stay registered.
        """
        self.clear_on_disconnect_all = clear_on_disconnect_all
        self._connections: dict[str, ConnectionHandle] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._connections

    def __iter__(self) -> Iterator[ConnectionHandle]:
        return iter(self._snapshot())

    def _snapshot(self) -> list[ConnectionHandle]:
        with self._lock:
            return list(self._connections.values())

    def _update_gauge(self) -> None:
        registry_connections_registered.set(len(self._connections))

    def register(self, handle: ConnectionHandle) -> None:
        """
        Registers a single handle under its key.

        Args:
            handle: The handle to register. Ignored if its key is empty.
        """
        self.register_many([handle])

    def register_many(self, handles: Iterable[ConnectionHandle]) -> None:
        """
        Registers every handle with a non-empty key.

        An existing entry with the same key is overwritten (last write wins).

        Args:
            handles: Handles to register, in order.
        """
        with self._lock:
            for handle in handles:
                key = handle.key()
                if not key:
                    logger.debug(
                        f"Skipping handle ({id(handle)}) without a key"
                    )
                    continue

                previous = self._connections.get(key)
                if previous is not None and previous is not handle:
                    logger.debug(
                        f"Handle ({id(previous)}) for key {key} replaced "
                        f"by ({id(handle)})"
                    )
                self._connections[key] = handle
                logger.debug(f"Registered connection {key}")
            self._update_gauge()

    def contains(self, handle: ConnectionHandle) -> bool:
        """
        Checks whether a handle with the same key is registered.

        Only the key is compared, not the handle's identity.

        Args:
            handle: The handle to look for.

        Returns:
            True if the handle's key is registered, False otherwise.
        """
        key = handle.key()
        with self._lock:
            return bool(key) and key in self._connections

    def get(self, key: str) -> ConnectionHandle | None:
        """
        Get a registered handle by key.

        Args:
            key: The endpoint address to look up.

        Returns:
            The handle if found, None otherwise.
        """
        with self._lock:
            return self._connections.get(key)

    def keys(self) -> list[str]:
        """Return the registered keys in registration order."""
        with self._lock:
            return list(self._connections)

    def each(self, fn: Callable[[ConnectionHandle], Any]) -> None:
        """
        Calls fn once for every registered handle.

        Iterates over a snapshot taken at call time, so fn may register or
        unregister handles without skipping or repeating entries.

        Args:
            fn: Callable receiving each handle.
        """
        for handle in self._snapshot():
            fn(handle)

    def unregister(self, handle: ConnectionHandle) -> None:
        """
        Forgets a handle without disconnecting it.

        Args:
            handle: The handle to forget. Missing keys are ignored.
        """
        self.unregister_many([handle])

    def unregister_many(self, handles: Iterable[ConnectionHandle]) -> None:
        """
        Forgets every given handle's key without disconnecting the handles.

        Args:
            handles: Handles to forget. Missing keys are ignored.
        """
        with self._lock:
            for handle in handles:
                key = handle.key()
                if self._connections.pop(key, None) is not None:
                    logger.debug(f"Unregistered connection {key}")
            self._update_gauge()

    def _dispatch(
        self,
        operation: str,
        targets: list[tuple[str, ConnectionHandle]],
        event: str,
        message: Any,
    ) -> int:
        delivered = 0
        for key, handle in targets:
            try:
                if not handle.is_ready():
                    registry_dispatch_skipped_total.labels(
                        operation=operation
                    ).inc()
                    continue
                handle.send(event, message)
            except Exception as e:
                # One failing connection must not abort delivery to the rest
                logger.warning(
                    f"Failed to {operation} event {event!r} to connection "
                    f"{key}: {e}"
                )
                registry_dispatch_failures_total.labels(
                    operation=operation
                ).inc()
                continue
            delivered += 1
            registry_dispatch_total.labels(operation=operation).inc()

        logger.debug(
            f"{operation} of event {event!r} delivered to "
            f"{delivered}/{len(targets)} connections"
        )
        return delivered

    def broadcast(self, event: str, message: Any) -> int:
        """
        Sends an event to every ready connection.

        Connections that are not ready are skipped; nothing is queued or
        retried.

        Args:
            event: The event to raise.
            message: String or JSON-serializable data to send.

        Returns:
            Number of connections the event was handed to.
        """
        with self._lock:
            targets = list(self._connections.items())
        return self._dispatch("broadcast", targets, event, message)

    def multicast(
        self, exclude: Iterable[str] | None, event: str, message: Any
    ) -> int:
        """
        Sends an event to every ready connection except the excluded keys.

        Exclusion is by registry key; use keys_of() to exclude handle
        objects. Excluded connections stay registered.

        Args:
            exclude: Keys to leave out. None or empty behaves like broadcast.
            event: The event to raise.
            message: String or JSON-serializable data to send.

        Returns:
            Number of connections the event was handed to.

        Raises:
            TypeError: If exclude is a single str instead of an iterable.
        """
        if isinstance(exclude, str):
            raise TypeError(
                "multicast() excludes an iterable of keys, not a single str; "
                f"use [{exclude!r}]"
            )
        excluded = set(exclude or ())
        with self._lock:
            targets = [
                (key, handle)
                for key, handle in self._connections.items()
                if key not in excluded
            ]
        return self._dispatch("multicast", targets, event, message)

    def disconnect(self, handle: ConnectionHandle) -> None:
        """
        Disconnects and removes the connection registered under handle's key.

        The handle currently registered for the key is the one disconnected,
        which may differ from the argument. No-op if the key is absent.

        Args:
            handle: Handle whose key identifies the connection.
        """
        key = handle.key()
        with self._lock:
            registered = self._connections.pop(key, None)
            self._update_gauge()
        if registered is None:
            return

        try:
            registered.disconnect()
        except Exception as e:
            logger.warning(f"Failed to disconnect connection {key}: {e}")
            registry_dispatch_failures_total.labels(
                operation="disconnect"
            ).inc()
        else:
            registry_disconnects_total.inc()
        logger.debug(f"Disconnected connection {key}")

    def disconnect_all(self) -> None:
        """
        Disconnects every registered connection.

        Entries are removed as well when clear_on_disconnect_all is set;
        otherwise they stay registered and callers must unregister them.
        """
        with self._lock:
            targets = list(self._connections.items())
            if self.clear_on_disconnect_all:
                self._connections.clear()
                self._update_gauge()

        for key, handle in targets:
            try:
                handle.disconnect()
            except Exception as e:
                logger.warning(f"Failed to disconnect connection {key}: {e}")
                registry_dispatch_failures_total.labels(
                    operation="disconnect_all"
                ).inc()
                continue
            registry_disconnects_total.inc()

        logger.info(f"Disconnected {len(targets)} connections")
