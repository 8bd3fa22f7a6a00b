import atexit
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

logger = logging.getLogger(__name__)


class BackgroundDispatcher:
    """
    Fire-and-forget runner for best-effort side effects.

    Jobs run inside a fresh application context on a small shared thread pool,
    so the request that scheduled them never waits on them. Every exception a
    job raises is logged and discarded; there is no retry. With
    ``NOTIFY_ASYNC = False`` (tests) jobs run inline under the same contract.
    """

    def __init__(self, app=None):
        self.app = None
        self._executor = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.app = app
        if app.config.get("NOTIFY_ASYNC", True):
            self._executor = ThreadPoolExecutor(
                max_workers=app.config.get("NOTIFY_MAX_WORKERS", 4),
                thread_name_prefix="vibeqa-notify",
            )
            # Let queued notifications finish on interpreter exit
            atexit.register(self.shutdown, True)
        app.extensions["background"] = self

    def submit(self, fn: Callable, *args, **kwargs) -> None:
        if self._executor is None:
            self._run(fn, *args, **kwargs)
            return
        try:
            self._executor.submit(self._run, fn, *args, **kwargs)
        except RuntimeError:
            # Executor already shut down (interpreter exit)
            logger.warning("background_job_dropped", extra={"event": "background_job_dropped", "job": fn.__name__})

    def _run(self, fn: Callable, *args, **kwargs) -> None:
        try:
            with self.app.app_context():
                fn(*args, **kwargs)
        except Exception:
            logger.exception("background_job_failed", extra={"event": "background_job_failed", "job": fn.__name__})

    def shutdown(self, wait: bool = False) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
