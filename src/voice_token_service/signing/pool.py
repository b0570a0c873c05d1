"""
voice_token_service.signing.pool

Fixed-size signing worker pool with round-robin dispatch.

Responsibilities:
- Create N workers at startup and keep them for the process lifetime.
- Pick workers strictly round-robin via `next()`, without waiting for a worker to be idle.
- Correlate responses to requests by request id (safe with several in-flight requests per worker).
- Bound each wait with a timeout; a timed-out request counts as a signing failure.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
from collections.abc import Callable

from voice_token_service.observability.logging import get_logger
from voice_token_service.signing.protocol import SigningCredentials, SignRequest, SignResponse
from voice_token_service.signing.signer import sign_voice_token
from voice_token_service.signing.worker import (
    ResponseSink,
    Signer,
    SigningWorker,
    WorkerMode,
    make_worker,
)

log = get_logger(__name__)

WorkerFactory = Callable[[int, ResponseSink], SigningWorker]


class WorkerPoolError(RuntimeError):
    pass


class SigningWorkerPool:
    def __init__(
        self,
        *,
        size: int,
        worker_factory: WorkerFactory,
        timeout_seconds: float = 10.0,
    ) -> None:
        if size < 1:
            raise ValueError("pool size must be >= 1")
        self._size = size
        self._worker_factory = worker_factory
        self._timeout_seconds = timeout_seconds

        self._workers: list[SigningWorker] = []
        # Collector threads call back into the pool, so the cursor needs a real lock.
        self._cursor = 0
        self._cursor_lock = threading.Lock()

        self._request_ids = itertools.count(1)
        self._pending: dict[int, tuple[asyncio.AbstractEventLoop, asyncio.Future[SignResponse]]] = {}
        self._pending_lock = threading.Lock()

    @property
    def size(self) -> int:
        return self._size

    @property
    def workers(self) -> tuple[SigningWorker, ...]:
        return tuple(self._workers)

    @property
    def started(self) -> bool:
        return bool(self._workers)

    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def start(self) -> None:
        if self._workers:
            return
        workers: list[SigningWorker] = []
        try:
            for index in range(self._size):
                worker = self._worker_factory(index, self._on_response)
                worker.start()
                workers.append(worker)
        except Exception:
            # Startup is all-or-nothing: a partial pool would skew round-robin.
            for worker in workers:
                worker.stop()
            raise
        self._workers = workers
        log.info("sign_pool_started", size=self._size, mode=workers[0].mode)

    def stop(self) -> None:
        workers, self._workers = self._workers, []
        for worker in workers:
            worker.stop()

        with self._pending_lock:
            pending, self._pending = self._pending, {}
        for request_id, (loop, future) in pending.items():
            self._resolve_threadsafe(
                loop,
                future,
                SignResponse(request_id=request_id, token=None, error="pool stopped"),
            )
        if workers:
            log.info("sign_pool_stopped", size=len(workers), abandoned=len(pending))

    def next(self) -> SigningWorker:
        if not self._workers:
            raise WorkerPoolError("signing pool is not started")
        with self._cursor_lock:
            worker = self._workers[self._cursor]
            self._cursor = (self._cursor + 1) % self._size
        return worker

    async def dispatch(
        self,
        *,
        identity: str,
        credentials: SigningCredentials,
        ttl_seconds: int = 3600,
    ) -> str | None:
        """
        Send one sign request to the next worker and wait for its response.

        Returns the signed token, or None when signing failed or timed out. Errors
        raised while handing the request to a worker propagate to the caller.
        """

        loop = asyncio.get_running_loop()
        future: asyncio.Future[SignResponse] = loop.create_future()
        request_id = next(self._request_ids)

        worker = self.next()
        with self._pending_lock:
            self._pending[request_id] = (loop, future)
        try:
            worker.submit(
                SignRequest(
                    request_id=request_id,
                    identity=identity,
                    credentials=credentials,
                    ttl_seconds=ttl_seconds,
                )
            )
            response = await asyncio.wait_for(future, timeout=self._timeout_seconds)
        except TimeoutError:
            log.warning(
                "sign_timeout",
                request_id=request_id,
                worker=worker.name,
                timeout_seconds=self._timeout_seconds,
            )
            return None
        finally:
            with self._pending_lock:
                self._pending.pop(request_id, None)

        if not response.ok:
            log.warning(
                "token_sign_failed",
                request_id=request_id,
                worker=worker.name,
                error=response.error,
            )
            return None
        return response.token

    def _on_response(self, response: SignResponse) -> None:
        # Runs on a worker's collector thread.
        with self._pending_lock:
            entry = self._pending.get(response.request_id)
        if entry is None:
            log.warning("sign_late_response", request_id=response.request_id)
            return
        loop, future = entry
        self._resolve_threadsafe(loop, future, response)

    @staticmethod
    def _resolve_threadsafe(
        loop: asyncio.AbstractEventLoop,
        future: asyncio.Future[SignResponse],
        response: SignResponse,
    ) -> None:
        def _set() -> None:
            if not future.done():
                future.set_result(response)

        try:
            loop.call_soon_threadsafe(_set)
        except RuntimeError:
            # Loop already closed; the waiting request is gone with it.
            log.warning("sign_response_dropped", request_id=response.request_id)


def create_signing_pool(
    *,
    size: int,
    mode: WorkerMode,
    timeout_seconds: float,
    signer: Signer = sign_voice_token,
) -> SigningWorkerPool:
    def factory(index: int, sink: ResponseSink) -> SigningWorker:
        return make_worker(mode, index=index, sink=sink, signer=signer)

    return SigningWorkerPool(size=size, worker_factory=factory, timeout_seconds=timeout_seconds)


# --- Module Notes -----------------------------------------------------------
# The cursor advances on every dispatch, so N back-to-back dispatches touch workers
# 0..N-1 exactly once each before wrapping, whether or not earlier ones completed.
