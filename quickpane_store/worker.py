from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Optional


class StoreWorker:
    """Runs store operations on a background thread, off the control thread."""

    def __init__(self, logger: logging.Logger, *, name: str = "QuickPaneStore") -> None:
        self._queue: "queue.Queue[Optional[Callable[[], Any]]]" = queue.Queue()
        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._logger = logger
        self._name = name

    @property
    def is_running(self) -> bool:
        worker = self._worker
        return worker is not None and worker.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        worker = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._worker = worker
        worker.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        try:
            self._queue.put_nowait(None)
        except queue.Full:
            pass
        worker = self._worker
        if worker:
            worker.join(timeout=timeout)
            if worker.is_alive():
                self._logger.warning("Thread %s did not exit cleanly within %.1fs", worker.name, timeout)
        self._worker = None

    def submit(self, func: Callable[[], Any], *, wait: bool = False, timeout: Optional[float] = 2.0) -> Any:
        if not self.is_running:
            if not wait:
                self._logger.debug("Store worker not running; running task inline")
            return func()
        if not wait:
            self._queue.put(func)
            return None
        done = threading.Event()
        claim = threading.Lock()
        outcome: dict[str, Any] = {}
        state = {"status": "pending"}

        def _wrapper() -> None:
            with claim:
                if state["status"] != "pending":
                    return
                state["status"] = "running"
            try:
                outcome["value"] = func()
            except Exception as exc:
                outcome["error"] = exc
            finally:
                done.set()

        self._queue.put(_wrapper)
        if not done.wait(timeout):
            with claim:
                withdrawn = state["status"] == "pending"
                if withdrawn:
                    state["status"] = "withdrawn"
            if withdrawn:
                # the queued wrapper is now a no-op
                self._logger.debug("Store worker busy; running task inline")
                return func()
            self._logger.debug("Store task already running on worker; waiting for it")
            done.wait()
        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("value")

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                task = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            if task is None:
                break
            try:
                task()
            except Exception as exc:
                self._logger.warning("Store task failed: %s", exc, exc_info=exc)
