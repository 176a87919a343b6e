import logging
import threading
import time
from collections import OrderedDict

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Keeps one controller per browser session.

    Sessions idle for longer than ``ttl_seconds`` are dropped, and once
    ``max_sessions`` are held the least recently used one is evicted.
    """

    def __init__(self, factory, max_sessions=100, ttl_seconds=3600, clock=time.monotonic):
        self._factory = factory
        self._max_sessions = max_sessions
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        # session id -> (controller, last used), least recently used first
        self._controllers = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._controllers)

    def __contains__(self, session_id):
        with self._lock:
            return session_id in self._controllers

    def _expire(self, now, keep=None):
        dropped = []
        for session_id, (controller, last_used) in list(self._controllers.items()):
            if session_id == keep:
                continue
            stale = bool(self._ttl_seconds) and now - last_used > self._ttl_seconds
            full = bool(self._max_sessions) and len(self._controllers) > self._max_sessions
            if not (stale or full):
                break
            del self._controllers[session_id]
            dropped.append((session_id, controller))
        return dropped

    def _touch(self, session_id, controller, now):
        self._controllers[session_id] = (controller, now)
        self._controllers.move_to_end(session_id)

    def lookup(self, session_id):
        """Return the session's controller, or None without creating one."""
        now = self._clock()
        with self._lock:
            dropped = self._expire(now)
            entry = self._controllers.get(session_id) if session_id else None
            if entry is not None:
                self._touch(session_id, entry[0], now)
        self._close(dropped)
        return entry[0] if entry is not None else None

    def get(self, session_id):
        now = self._clock()
        with self._lock:
            entry = self._controllers.get(session_id)
            if entry is None:
                controller = self._factory()
                logger.debug("Created controller for session %s", session_id)
            else:
                controller = entry[0]
            self._touch(session_id, controller, now)
            dropped = self._expire(now, keep=session_id)
        self._close(dropped)
        return controller

    def release(self, session_id):
        """Drop the session's controller; an in-flight generation is discarded on completion."""
        with self._lock:
            entry = self._controllers.pop(session_id, None)
        if entry is None:
            return False
        entry[0].close()
        logger.debug("Released session %s", session_id)
        return True

    def _close(self, dropped):
        for session_id, controller in dropped:
            controller.close()
            logger.info("Expired session %s", session_id)
