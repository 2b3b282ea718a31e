"""
Background execution for blocking calls (network fetches, REST saves).

A CallWorker is moved onto its own QThread; its result or exception comes
back to the GUI thread through queued signals. BackgroundRunner keeps the
thread/worker pairs alive until they finish and invokes the callbacks on
its own (GUI) thread.
"""

from typing import Any, Callable, Dict, Optional, Tuple

from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot

from dentalreview.services.logging_service import get_logger

Callbacks = Tuple[Callable[[Any], None], Callable[[Exception], None]]


class CallWorker(QObject):
    """
    Runs one callable and reports the outcome.

    Signals:
        finished: Emitted with (worker id, return value).
        failed: Emitted with (worker id, raised exception).
    """

    finished = Signal(int, object)
    failed = Signal(int, object)

    def __init__(self, worker_id: int, fn: Callable[..., Any], *args: Any) -> None:
        super().__init__()
        self._logger = get_logger(__name__)
        self._worker_id = worker_id
        self._fn = fn
        self._args = args

    @Slot()
    def run(self) -> None:
        try:
            result = self._fn(*self._args)
        except Exception as e:
            # Thread boundary: hand the error to the GUI thread
            self._logger.error(f"Background call {self._fn!r} failed: {e}", exc_info=True)
            self.failed.emit(self._worker_id, e)
            return
        self.finished.emit(self._worker_id, result)


class BackgroundRunner(QObject):
    """Starts CallWorkers on dedicated threads."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._next_id = 0
        self._threads: Dict[int, Tuple[QThread, CallWorker]] = {}
        self._callbacks: Dict[int, Callbacks] = {}

    def run(
        self,
        fn: Callable[..., Any],
        *args: Any,
        on_finished: Callable[[Any], None],
        on_failed: Callable[[Exception], None],
    ) -> int:
        """
        Call fn(*args) on a new thread.

        on_finished / on_failed are invoked on the thread that owns this
        runner (the GUI thread).

        Returns:
            The id of the started call.
        """
        self._next_id += 1
        worker_id = self._next_id

        thread = QThread()
        worker = CallWorker(worker_id, fn, *args)
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.finished.connect(self._on_finished)
        worker.failed.connect(self._on_failed)
        # Direct: _pop() waits on the thread from the GUI side
        worker.finished.connect(thread.quit, Qt.ConnectionType.DirectConnection)
        worker.failed.connect(thread.quit, Qt.ConnectionType.DirectConnection)

        self._threads[worker_id] = (thread, worker)
        self._callbacks[worker_id] = (on_finished, on_failed)

        thread.start()
        return worker_id

    @Slot(int, object)
    def _on_finished(self, worker_id: int, result: Any) -> None:
        on_finished, _ = self._pop(worker_id)
        if on_finished:
            on_finished(result)

    @Slot(int, object)
    def _on_failed(self, worker_id: int, error: Exception) -> None:
        _, on_failed = self._pop(worker_id)
        if on_failed:
            on_failed(error)

    def _pop(self, worker_id: int) -> Tuple[Optional[Callable], Optional[Callable]]:
        entry = self._threads.pop(worker_id, None)
        if entry:
            thread, _ = entry
            thread.wait()
        return self._callbacks.pop(worker_id, (None, None))

    @property
    def active_count(self) -> int:
        return len(self._threads)

    def wait_all(self, msecs: int = 5000) -> None:
        """Block until running threads stop (used on shutdown)."""
        for thread, _ in list(self._threads.values()):
            thread.wait(msecs)
