"""
Background execution of normalizations for an interactive caller.

A dispatcher owns one worker thread, so at most one normalization runs at a
time and later submissions queue behind it. Each submission gets a sequence
number; its result is handed to ``deliver`` (the caller's way of getting back
onto its own thread, inline by default) and written into a ResultSlot that
only ever moves forward in sequence order.

There is no cancellation: a started normalization always runs to completion.
"""
from __future__ import annotations
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional
import itertools
import logging
import threading

from ..exceptions import NormalizationFailure
from ..models.raster_image import RasterImage
from ..models.target_dimensions import TargetDimensions
from .normalization_service import NormalizationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizationResult:
    sequence: int
    image: Optional[RasterImage] = None
    error: Optional[NormalizationFailure] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


@dataclass(frozen=True)
class Submission:
    sequence: int
    future: "Future[NormalizationResult]"

    def result(self, timeout: float = None) -> NormalizationResult:
        return self.future.result(timeout)


class ResultSlot:
    """
    The single "last processed result" a display reads from.

    A result from an older submission never replaces a newer one. A failed
    result clears the image, so nothing stale is shown for a newer request.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Optional[NormalizationResult] = None
        self._pending = 0

    def begin(self) -> None:
        with self._lock:
            self._pending += 1

    def publish(self, result: NormalizationResult) -> bool:
        """Store *result* unless a newer one is already there. Returns True if stored."""
        with self._lock:
            self._pending = max(0, self._pending - 1)
            if self._latest is not None and self._latest.sequence > result.sequence:
                logger.debug(f"Dropping stale result #{result.sequence}")
                return False
            self._latest = result
            return True

    @property
    def latest(self) -> Optional[NormalizationResult]:
        with self._lock:
            return self._latest

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._pending > 0


def _deliver_inline(fn: Callable[[], None]) -> None:
    fn()


class NormalizationDispatcher:
    """
    Runs NormalizationService.normalize off the caller's thread.

    Args:
        normalization_service: service to run, a default one is built if omitted
        deliver: callable that runs a zero-argument function on the caller's
            thread (e.g. a UI event loop's ``call_soon_threadsafe``)
        slot: destination for results, one per dispatcher by default
    """

    def __init__(self,
                 normalization_service: NormalizationService = None,
                 deliver: Callable[[Callable[[], None]], None] = _deliver_inline,
                 slot: ResultSlot = None):
        self.normalization_service = normalization_service or NormalizationService()
        self.deliver = deliver
        self.slot = slot or ResultSlot()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="normalize")
        self._counter = itertools.count(1)
        self._submit_lock = threading.Lock()

    def submit(
        self,
        snapshot: RasterImage,
        target: TargetDimensions = None,
        on_complete: Callable[[NormalizationResult], None] = None,
    ) -> Submission:
        with self._submit_lock:
            sequence = next(self._counter)
            self.slot.begin()
            try:
                future = self._executor.submit(self._run, sequence, snapshot, target, on_complete)
            except RuntimeError:
                self.slot.publish(NormalizationResult(sequence=sequence,
                                                      error=NormalizationFailure("Dispatcher is shut down")))
                raise
        logger.info(f"Queued normalization #{sequence}")
        return Submission(sequence=sequence, future=future)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()

    # ─── Worker side ───────────────────────────────────────────────
    def _run(self, sequence, snapshot, target, on_complete) -> NormalizationResult:
        try:
            image = self.normalization_service.normalize(snapshot, target)
            result = NormalizationResult(sequence=sequence, image=image)
        except NormalizationFailure as err:
            logger.warning(f"Normalization #{sequence} failed: {err}")
            result = NormalizationResult(sequence=sequence, error=err)
        except Exception:
            # clears the processing flag, the future carries the exception
            self.slot.publish(NormalizationResult(sequence=sequence,
                                                  error=NormalizationFailure("Unexpected error")))
            logger.exception(f"Normalization #{sequence} crashed")
            raise

        def _complete():
            self.slot.publish(result)
            if on_complete is not None:
                on_complete(result)

        self.deliver(_complete)
        return result
