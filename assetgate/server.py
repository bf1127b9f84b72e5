"""
Process lifecycle for the asset gateway.

Wraps a threaded Werkzeug server with in-flight request tracking so a
shutdown signal stops new connections at once and gives running requests a
bounded grace period.
"""

import logging
import signal
import threading
import time

from werkzeug.serving import WSGIRequestHandler, make_server
from werkzeug.wsgi import ClosingIterator

logger = logging.getLogger(__name__)


class InFlightTracker:
    """WSGI middleware counting requests whose response is not yet fully sent."""

    def __init__(self, app):
        self.app = app
        self._active = 0
        self._cond = threading.Condition()

    @property
    def active(self) -> int:
        with self._cond:
            return self._active

    def _release(self):
        with self._cond:
            self._active -= 1
            self._cond.notify_all()

    def __call__(self, environ, start_response):
        with self._cond:
            self._active += 1
        try:
            app_iter = self.app(environ, start_response)
        except BaseException:
            self._release()
            raise
        return ClosingIterator(app_iter, [self._release])

    def wait_idle(self, timeout: float) -> bool:
        """Block until no request is in flight or `timeout` seconds pass."""
        deadline = time.monotonic() + timeout
        with self._cond:
            while self._active > 0:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(remaining)
            return True


class GatewayServer:
    """
    Threaded HTTP server with graceful, bounded shutdown.

    Args:
        app: WSGI application to serve
        host: Bind address
        port: Bind port, 0 picks a free one
        grace_period: Seconds in-flight requests get after stop()
        read_timeout: Socket timeout per connection in seconds
    """

    def __init__(self, app, host: str, port: int, grace_period: float = 15, read_timeout: float = 5):
        self.grace_period = grace_period
        self.tracker = InFlightTracker(app)
        handler = type("GatewayRequestHandler", (WSGIRequestHandler,), {"timeout": read_timeout})
        self._server = make_server(host, port, self.tracker, threaded=True, request_handler=handler)
        # Handler threads are not joined on close, the tracker bounds the wait instead
        self._server.block_on_close = False
        self._thread = None
        self._stopped = threading.Event()

    @property
    def port(self) -> int:
        return self._server.server_address[1]

    def start(self):
        """Serve in a background thread."""
        logger.info(f"Listening on {self._server.server_address[0]}:{self.port}")
        self._thread = threading.Thread(target=self._server.serve_forever, name="gateway-server", daemon=True)
        self._thread.start()

    def stop(self) -> bool:
        """
        Stop accepting connections and wait for in-flight requests.

        Returns:
            True if every in-flight request finished within the grace period
        """
        if self._stopped.is_set():
            return True
        self._stopped.set()

        logger.info("stopping")
        if self._thread is not None:
            self._server.shutdown()
        self._server.server_close()

        drained = self.tracker.wait_idle(self.grace_period)
        if drained:
            logger.info("All in-flight requests completed")
        else:
            logger.warning(
                f"Grace period of {self.grace_period}s expired with {self.tracker.active} requests in flight"
            )
        return drained

    def serve_until_signalled(self, signals=(signal.SIGINT, signal.SIGTERM)):
        """Serve until one of `signals` arrives, then shut down gracefully."""
        done = threading.Event()

        def _on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}")
            done.set()

        for sig in signals:
            signal.signal(sig, _on_signal)

        self.start()
        while not done.wait(timeout=1):
            pass
        return self.stop()
