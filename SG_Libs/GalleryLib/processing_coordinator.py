"""
Processing coordinator for the Sticker Gallery.

The coordinator owns the gallery store and is the only way to mutate it.
It decides when a record needs segmentation, runs segmentation and outline
extraction on a worker pool, and applies results back to the store.

Concurrency model:
    - Capture, import, delete, variant selection and result application all
      run under one coordinator lock, so store mutations never interleave.
    - Segmentation and outline extraction run on a ThreadPoolExecutor; work
      for different records may overlap and may finish in any order.
    - A record has at most one task in flight. Requests while IN_FLIGHT
      (or after PROCESSED) are no-ops.
    - Deletion does not cancel work. When a task completes, its result is
      applied only if the record still exists and is still IN_FLIGHT;
      otherwise it is discarded.
    - Observer events are queued under the coordinator lock and delivered
      by one thread at a time, so observers see them in mutation order.

Record lifecycle:
    UNPROCESSED -> IN_FLIGHT -> PROCESSED
                             -> FAILED -> (explicit retry) -> IN_FLIGHT

Classes:
    ProcessingCoordinator: Serialized gallery owner and task dispatcher
"""

import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Deque, List, Optional, Set, Tuple, Union

from PIL import Image

from SG_Libs.ContourLib.geometry_mapper import VectorPath, map_to_display
from SG_Libs.ContourLib.silhouette_extractor import SilhouetteExtractor
from SG_Libs.GalleryLib.gallery_store import GalleryStore
from SG_Libs.ImageEditingLib.image_editing_ops import crop_to_aspect_ratio, normalize_orientation
from SG_Libs.ImageEditingLib.image_models import (
    DisplayVariant,
    ImageRecord,
    ProcessingState,
    SourceImage,
)
from SG_Libs.ImageEditingLib.sticker_renderer import render_record
from SG_Libs.SegmentationLib.segmentation_service import SegmentationResult, SegmentationService
from SG_Libs.SegmentationLib.segmenters import create_segmenter
from SG_Libs.config import GalleryConfig
from SG_Libs.constants import (
    EVENT_DELETED,
    EVENT_FAILED,
    EVENT_INSERTED,
    EVENT_PROCESSED,
    EVENT_PROCESSING_STARTED,
    EVENT_VARIANT_CHANGED,
    ORIENTATION_UP,
)
from SG_Libs.errors import GalleryError, RecordNotFoundError

logger = logging.getLogger(__name__)

# Observer callback: (event name, record id)
Observer = Callable[[str, str], None]

_REQUESTABLE_STATES = (ProcessingState.UNPROCESSED, ProcessingState.FAILED)


class ProcessingCoordinator:
    """
    Owns the gallery and guarantees at-most-one segmentation per record.

    Example:
        >>> with ProcessingCoordinator(config=GalleryConfig(auto_process=True)) as coordinator:
        ...     record_id = coordinator.submit_photo(photo, orientation=6)
        ...     coordinator.wait_idle(timeout=30)
        ...     outline = coordinator.compute_outline(record_id, (390, 844))
    """

    def __init__(
        self,
        store: Optional[GalleryStore] = None,
        service: Optional[SegmentationService] = None,
        extractor: Optional[SilhouetteExtractor] = None,
        config: Optional[GalleryConfig] = None,
        max_workers: Optional[int] = None,
    ):
        self.config = config or GalleryConfig()
        self.store = store if store is not None else GalleryStore()
        self.service = service or SegmentationService(
            create_segmenter(self.config.segmenter),
            max_dimension=self.config.max_dimension,
        )
        self.extractor = extractor or SilhouetteExtractor(
            smoothing_passes=self.config.smoothing_passes,
            max_image_dimension=self.config.contour_max_dimension,
        )

        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._pending: Set[Future] = set()
        self._observers: List[Observer] = []
        self._events: Deque[Tuple[str, str]] = deque()
        self._dispatch_lock = threading.RLock()
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or self.config.max_workers,
            thread_name_prefix="sg-worker",
        )

    # ------------------------------------------------------------------
    # Lifecycle

    def __enter__(self) -> "ProcessingCoordinator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """
        Stop accepting work and release the worker pool.

        Args:
            wait: Block until running tasks finish
            cancel_pending: Drop tasks that have not started yet; their
                            records stay IN_FLIGHT
        """
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)
        logger.debug("Processing coordinator shut down")

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no segmentation task is pending.

        Returns:
            True if idle, False if the timeout expired first
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout)

    # ------------------------------------------------------------------
    # Observers

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """
        Register a callback receiving (event, record_id) after each change.

        Returns:
            A function that unsubscribes the observer
        """
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def _emit(self, event: str, record_id: str) -> None:
        # Caller holds self._lock
        self._events.append((event, record_id))

    def _dispatch(self) -> None:
        """Deliver queued events in order; must be called without holding self._lock."""
        with self._dispatch_lock:
            while True:
                with self._lock:
                    if not self._events:
                        return
                    event, record_id = self._events.popleft()
                    observers = list(self._observers)
                for observer in observers:
                    try:
                        observer(event, record_id)
                    except Exception:
                        logger.exception(f"Observer failed handling '{event}' for record {record_id}")

    # ------------------------------------------------------------------
    # Store entry points

    def submit_photo(self, pixels: Any, orientation: int = ORIENTATION_UP) -> str:
        """
        Add a captured photo to the gallery.

        Args:
            pixels: Decoded PIL image (or a SourceImage)
            orientation: EXIF orientation of the pixels (1-8)

        Returns:
            The new record id
        """
        source = pixels if isinstance(pixels, SourceImage) else SourceImage(pixels, orientation)
        record = ImageRecord(original=source)

        with self._lock:
            if self._closed:
                raise RuntimeError("Coordinator is shut down")
            self.store.insert(record)
            count = len(self.store)
            self._emit(EVENT_INSERTED, record.id)

        logger.info(f"Added photo {record.id} ({source.size[0]}x{source.size[1]}), gallery size {count}")
        self._dispatch()

        if self.config.auto_process:
            self.request_processing(record.id)
        return record.id

    def import_photo(self, pixels: Any, orientation: int = ORIENTATION_UP) -> str:
        """
        Add a photo picked from the library.

        The photo is made upright and center-cropped to the configured
        import aspect ratio before it becomes the record's original.
        """
        source = pixels if isinstance(pixels, SourceImage) else SourceImage(pixels, orientation)
        if self.config.import_aspect_ratio:
            upright = normalize_orientation(source).pixels
            source = SourceImage(crop_to_aspect_ratio(upright, self.config.import_aspect_ratio))
        return self.submit_photo(source)

    def delete(self, record_id: str) -> bool:
        """
        Remove a record. Work already in flight for it runs to completion
        and its result is discarded.

        Returns:
            True if a record was removed
        """
        with self._lock:
            record = self.store.remove(record_id)
            if record is not None:
                self._emit(EVENT_DELETED, record_id)

        if record is None:
            return False

        logger.info(f"Deleted photo {record_id} (state {record.processing_state.value})")
        self._dispatch()
        return True

    # ------------------------------------------------------------------
    # Processing

    def request_processing(self, record_id: str) -> bool:
        """
        Start segmentation for a record that is UNPROCESSED or FAILED.

        Returns:
            True if a task was scheduled, False if this was a no-op
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Coordinator is shut down")

            record = self.store.get(record_id)
            if record is None:
                logger.debug(f"Ignoring processing request for unknown record {record_id}")
                return False
            if record.processing_state not in _REQUESTABLE_STATES:
                logger.debug(
                    f"Ignoring processing request for {record_id} in state "
                    f"{record.processing_state.value}"
                )
                return False

            record.processing_state = ProcessingState.IN_FLIGHT
            record.last_error = None
            future = self._executor.submit(self._run_pipeline, record_id, record.original)
            self._pending.add(future)
            self._emit(EVENT_PROCESSING_STARTED, record_id)

        future.add_done_callback(self._task_done)
        logger.debug(f"Scheduled segmentation for {record_id}")
        self._dispatch()
        return True

    def retry(self, record_id: str) -> bool:
        """User-triggered retry of a FAILED record; failures never retry on their own."""
        with self._lock:
            if self._require(record_id).processing_state is not ProcessingState.FAILED:
                return False
        return self.request_processing(record_id)

    def on_view(self, record_id: str) -> ImageRecord:
        """
        Called when a record is opened for detailed viewing.

        Processing is requested lazily for records that were never processed.
        FAILED records are left alone until the user retries.
        """
        with self._lock:
            record = self._require(record_id)
            unprocessed = record.processing_state is ProcessingState.UNPROCESSED
        if unprocessed:
            self.request_processing(record_id)
        return record

    def _run_pipeline(self, record_id: str, source: SourceImage) -> None:
        try:
            result = self.service.process(source, record_id=record_id)
        except GalleryError as e:
            self._apply_failure(record_id, e)
            return
        except Exception as e:
            logger.exception(f"Segmentation crashed for record {record_id}")
            self._apply_failure(record_id, GalleryError(f"Segmentation failed: {e}", record_id))
            return

        try:
            outline = self.extractor.extract_outline(result.mask)
        except Exception:
            logger.exception(f"Outline extraction crashed for record {record_id}")
            outline = None

        self._apply_result(record_id, result, outline)

    def _task_done(self, future: Future) -> None:
        with self._idle:
            self._pending.discard(future)
            if not self._pending:
                self._idle.notify_all()

    def _current_in_flight(self, record_id: str) -> Optional[ImageRecord]:
        record = self.store.get(record_id)
        if record is None:
            logger.warning(f"Discarding result for deleted record {record_id}")
            return None
        if record.processing_state is not ProcessingState.IN_FLIGHT:
            logger.warning(
                f"Discarding result for record {record_id} in state "
                f"{record.processing_state.value}"
            )
            return None
        return record

    def _apply_result(
        self,
        record_id: str,
        result: SegmentationResult,
        outline: Optional[VectorPath],
    ) -> bool:
        with self._lock:
            record = self._current_in_flight(record_id)
            if record is None:
                return False
            record.processed = result.processed
            record.mask = result.mask
            record.outline = outline
            record.outline_unavailable = outline is None
            record.processing_state = ProcessingState.PROCESSED
            self._emit(EVENT_PROCESSED, record_id)

        logger.info(
            f"Processed photo {record_id} at {result.mask.size[0]}x{result.mask.size[1]}"
            f"{'' if outline is not None else ' (no outline, cutout only)'}"
        )
        self._dispatch()
        return True

    def _apply_failure(self, record_id: str, error: GalleryError) -> bool:
        with self._lock:
            record = self._current_in_flight(record_id)
            if record is None:
                return False
            record.processing_state = ProcessingState.FAILED
            record.last_error = error
            self._emit(EVENT_FAILED, record_id)

        logger.warning(f"Processing failed for photo {record_id}: {error}")
        self._dispatch()
        return True

    # ------------------------------------------------------------------
    # Presentation queries

    def _require(self, record_id: str) -> ImageRecord:
        record = self.store.get(record_id)
        if record is None:
            raise RecordNotFoundError("No such photo", record_id)
        return record

    def get_record(self, record_id: str) -> ImageRecord:
        with self._lock:
            return self._require(record_id)

    def records(self, newest_first: bool = False) -> List[ImageRecord]:
        with self._lock:
            if newest_first:
                return self.store.newest_first()
            return self.store.records()

    def __len__(self) -> int:
        with self._lock:
            return len(self.store)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self.store

    def processing_state(self, record_id: str) -> ProcessingState:
        with self._lock:
            return self._require(record_id).processing_state

    def selected_variant(self, record_id: str) -> DisplayVariant:
        with self._lock:
            return self._require(record_id).selected_variant

    def set_selected_variant(self, record_id: str, variant: Union[DisplayVariant, str]) -> None:
        """Remember which variant the user picked for this record."""
        variant = DisplayVariant(variant)
        with self._lock:
            self._require(record_id).selected_variant = variant
            self._emit(EVENT_VARIANT_CHANGED, record_id)
        self._dispatch()

    def compute_outline(
        self, record_id: str, display_size: Tuple[float, float]
    ) -> Optional[VectorPath]:
        """
        Outline of a processed record in display coordinates.

        Recomputed on every call so it always matches the current display
        size.

        Returns:
            The mapped path, or None when no outline is available
        """
        with self._lock:
            record = self._require(record_id)
            if record.processing_state is not ProcessingState.PROCESSED:
                return None
            outline = record.outline
            mask_size = record.mask.size

        if outline is None or outline.is_empty:
            return None
        try:
            return map_to_display(outline, mask_size, display_size)
        except ValueError as e:
            logger.debug(f"No outline for {record_id} at display size {display_size}: {e}")
            return None

    def render(
        self, record_id: str, display_size: Optional[Tuple[int, int]] = None
    ) -> 'Image.Image':
        """Render the record's effective variant (sticker, cutout or original)."""
        with self._lock:
            record = self._require(record_id)
        return render_record(
            record,
            display_size=display_size,
            border_width=self.config.sticker_border_width,
            border_color=self.config.sticker_border_color,
        )
