"""
Fixed-interval live polling.

A LivePoller calls its fetch function once right away and then every
`interval` seconds on a daemon thread until stop() is called. A failed
poll is handed to on_error and the next tick still runs.
"""

import logging
import os
import threading
from typing import Any, Callable, Optional

log = logging.getLogger("poller")

POLL_INTERVAL = float(os.getenv("POLL_INTERVAL", "30"))


class LivePoller:
    def __init__(self, fetch: Callable[[], Any],
                 on_update: Optional[Callable[[Any], None]] = None,
                 on_error: Optional[Callable[[Exception], None]] = None,
                 interval: float = POLL_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.fetch = fetch
        self.on_update = on_update
        self.on_error = on_error
        self.interval = interval
        self.polls = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def poll_once(self) -> Any:
        """Run a single fetch. Errors go to on_error (or the log) and return None."""
        self.polls += 1
        try:
            result = self.fetch()
        except Exception as e:
            if self.on_error:
                self.on_error(e)
            else:
                log.exception("Live poll failed")
            return None
        if self.on_update:
            self.on_update(result)
        return result

    def _run(self, stopped: threading.Event) -> None:
        while not stopped.is_set():
            self._poll(stopped)
            if stopped.wait(self.interval):
                break

    def _poll(self, stopped: threading.Event) -> None:
        self.polls += 1
        try:
            result = self.fetch()
        except Exception as e:
            if stopped.is_set():
                return
            if self.on_error:
                self.on_error(e)
            else:
                log.exception("Live poll failed")
            return
        # a fetch that outlived stop() is dropped
        if self.on_update and not stopped.is_set():
            self.on_update(result)

    def start(self) -> "LivePoller":
        if self.running:
            return self
        # each run owns its event, so a stopped thread still inside fetch stays stopped
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,),
                                        name="live-poller", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        if thread is not None and not thread.is_alive():
            self._thread = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stop() is called. Returns True once stopped."""
        return self._stop.wait(timeout)
