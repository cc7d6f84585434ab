"""Online/offline signal used to gate sync passes."""

import logging
import socket
import threading
from typing import Callable, List, Optional

log = logging.getLogger(__name__)


def tcp_reachable(host, port, timeout=3.0) -> bool:
    """Check whether ``host:port`` accepts a TCP connection."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class ConnectivityMonitor:
    """Holds the advisory online flag.

    The flag is read once at startup through ``check`` and afterwards only
    changes when the device reports a transition through ``set_online``.
    A sync may still fail while the flag says online; the sync client's own
    transport errors are authoritative.
    """

    def __init__(self, check: Optional[Callable[[], bool]] = None, initial: bool = True):
        self.check = check
        self._online = initial
        self._listeners: List[Callable[[bool], None]] = []
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config):
        return cls(check=lambda: tcp_reachable(config.check_host, config.check_port, config.check_timeout))

    @property
    def is_online(self) -> bool:
        return self._online

    def start(self) -> bool:
        """Take the initial reading."""
        if self.check is not None:
            try:
                online = bool(self.check())
            except Exception as e:
                log.warning(f"Connectivity check failed: {e}")
                online = False
            self.set_online(online)
        return self._online

    def subscribe(self, callback: Callable[[bool], None]):
        """Call ``callback(online)`` on every transition."""
        self._listeners.append(callback)
        return callback

    def set_online(self, online: bool) -> bool:
        """Record the current state; returns True when this was a transition."""
        online = bool(online)
        with self._lock:
            changed = online != self._online
            self._online = online
        if not changed:
            return False

        log.info(f"Connectivity changed: {'online' if online else 'offline'}")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception as e:
                log.error(f"Connectivity listener {listener!r} failed: {e}")
        return True
