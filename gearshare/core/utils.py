import datetime
import logging
import threading

logger = logging.getLogger(__name__)


def utcnow() -> datetime.datetime:
    """Naive UTC now; every timestamp in the database is naive UTC."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)

def to_utc(dt: datetime.datetime) -> datetime.datetime:
    """Converts an aware datetime to naive UTC. Naive input is assumed UTC."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(datetime.timezone.utc).replace(tzinfo=None)

def overlaps(start_a, end_a, start_b, end_b) -> bool:
    """Half-open `[start, end)` overlap; touching windows do not overlap."""
    return start_a < end_b and start_b < end_a


class BackgroundLoop:
    """Calls `run_once` every `interval` seconds on a daemon thread.

    Subclasses set `interval` and `thread_name`. An exception from one
    pass is logged and the loop carries on.
    """

    interval = 60
    thread_name = "gearshare-loop"

    def _init_loop(self):
        self._stop = threading.Event()
        self._thread = None

    def run_once(self):
        raise NotImplementedError

    def _run(self):
        logger.info(f"{self.thread_name} running every {self.interval}s.")
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception(f"{self.thread_name} pass failed")
            self._stop.wait(self.interval)

    def start(self):
        if self._thread and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.thread_name, daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self):
        return bool(self._thread and self._thread.is_alive())
