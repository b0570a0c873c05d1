"""
voice_token_service.signing.worker

Signing workers: isolated execution units that turn sign requests into sign responses.

Responsibilities:
- Run the worker loop (`serve`) that calls the signer once per request.
- Convert any signer failure into a `None` token response (never raise past the loop).
- Provide thread- and process-backed worker handles with the same message-only interface.
- Collect responses on a background thread and hand them to the pool via a sink callback.
"""

from __future__ import annotations

import multiprocessing
import queue
import threading
from collections.abc import Callable
from typing import Any, Literal

from voice_token_service.observability.logging import get_logger
from voice_token_service.signing.protocol import SHUTDOWN, SignRequest, SignResponse
from voice_token_service.signing.signer import sign_voice_token

log = get_logger(__name__)

Signer = Callable[[SignRequest], str]
ResponseSink = Callable[[SignResponse], None]
WorkerMode = Literal["process", "thread"]

# How often collectors wake up to check whether their worker died.
_COLLECT_POLL_SECONDS = 0.5


def handle_request(request: SignRequest, signer: Signer) -> SignResponse:
    try:
        token = signer(request)
    except Exception as e:  # noqa: BLE001 - the worker boundary turns every failure into a null token
        return SignResponse(
            request_id=request.request_id,
            token=None,
            error=f"{type(e).__name__}: {e}",
        )
    return SignResponse(request_id=request.request_id, token=token or None)


def serve(inbox: Any, outbox: Any, signer: Signer = sign_voice_token) -> None:
    """
    Worker loop. Exactly one response is emitted per request; the shutdown sentinel is
    echoed to the outbox so the collector on the other side can exit too.
    """

    while True:
        message = inbox.get()
        if message is SHUTDOWN:
            outbox.put(SHUTDOWN)
            return
        outbox.put(handle_request(message, signer))


class WorkerStartError(RuntimeError):
    pass


class SigningWorker:
    """
    Handle for one pool slot. Subclasses decide where `serve` runs.
    """

    mode: WorkerMode

    def __init__(self, *, index: int, sink: ResponseSink, signer: Signer = sign_voice_token) -> None:
        self.index = index
        self._sink = sink
        self._signer = signer
        self._inbox: Any = None
        self._outbox: Any = None
        self._collector: threading.Thread | None = None

    @property
    def name(self) -> str:
        return f"sign-worker-{self.index}"

    def start(self) -> None:
        try:
            self._start_executor()
        except Exception as e:
            raise WorkerStartError(f"{self.name} failed to start: {e}") from e

        self._collector = threading.Thread(
            target=self._collect,
            name=f"{self.name}-collector",
            daemon=True,
        )
        self._collector.start()

    def submit(self, request: SignRequest) -> None:
        if not self.is_alive():
            raise WorkerStartError(f"{self.name} is not running")
        self._inbox.put(request)

    def stop(self, *, timeout: float = 5.0) -> None:
        if self._inbox is not None and self.is_alive():
            self._inbox.put(SHUTDOWN)
        self._join_executor(timeout)
        if self._collector is not None:
            self._collector.join(timeout)
        if self._collector is None or not self._collector.is_alive():
            self._close_queues()

    def is_alive(self) -> bool:
        raise NotImplementedError

    def _start_executor(self) -> None:
        raise NotImplementedError

    def _join_executor(self, timeout: float) -> None:
        raise NotImplementedError

    def _close_queues(self) -> None:
        return None

    def _collect(self) -> None:
        while True:
            try:
                message = self._outbox.get(timeout=_COLLECT_POLL_SECONDS)
            except queue.Empty:
                if not self.is_alive():
                    log.warning("sign_worker_exited", worker=self.name)
                    return
                continue
            if message is SHUTDOWN:
                return
            self._sink(message)


class ThreadSigningWorker(SigningWorker):
    mode: WorkerMode = "thread"

    def __init__(self, *, index: int, sink: ResponseSink, signer: Signer = sign_voice_token) -> None:
        super().__init__(index=index, sink=sink, signer=signer)
        self._thread: threading.Thread | None = None

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _start_executor(self) -> None:
        self._inbox = queue.Queue()
        self._outbox = queue.Queue()
        self._thread = threading.Thread(
            target=serve,
            args=(self._inbox, self._outbox, self._signer),
            name=self.name,
            daemon=True,
        )
        self._thread.start()

    def _join_executor(self, timeout: float) -> None:
        if self._thread is not None:
            self._thread.join(timeout)


class ProcessSigningWorker(SigningWorker):
    """
    Runs the worker loop in a spawned interpreter. The signer must be importable by
    reference (module-level function) since it is pickled into the child.
    """

    mode: WorkerMode = "process"

    def __init__(self, *, index: int, sink: ResponseSink, signer: Signer = sign_voice_token) -> None:
        super().__init__(index=index, sink=sink, signer=signer)
        self._ctx = multiprocessing.get_context("spawn")
        self._process: Any = None

    def is_alive(self) -> bool:
        return self._process is not None and self._process.is_alive()

    def _start_executor(self) -> None:
        self._inbox = self._ctx.Queue()
        self._outbox = self._ctx.Queue()
        self._process = self._ctx.Process(
            target=serve,
            args=(self._inbox, self._outbox, self._signer),
            name=self.name,
            daemon=True,
        )
        self._process.start()

    def _join_executor(self, timeout: float) -> None:
        if self._process is None:
            return
        self._process.join(timeout)
        if self._process.is_alive():
            log.warning("sign_worker_terminated", worker=self.name)
            self._process.terminate()
            self._process.join(timeout)

    def _close_queues(self) -> None:
        # Releases the feeder threads; the collector has already stopped reading.
        for q in (self._inbox, self._outbox):
            if q is not None:
                q.close()


def make_worker(
    mode: WorkerMode,
    *,
    index: int,
    sink: ResponseSink,
    signer: Signer = sign_voice_token,
) -> SigningWorker:
    if mode == "thread":
        return ThreadSigningWorker(index=index, sink=sink, signer=signer)
    if mode == "process":
        return ProcessSigningWorker(index=index, sink=sink, signer=signer)
    raise ValueError(f"unknown worker mode: {mode!r}")


# --- Module Notes -----------------------------------------------------------
# Workers hold no per-request state between messages; any number of requests may be
# queued on one worker and are answered in submission order.
