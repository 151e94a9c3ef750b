# investment_tracker/services/slideshow_service.py
import threading
from dataclasses import dataclass
from typing import List, Optional

from investment_tracker.models.project import Project
from investment_tracker.services.summary_service import ProjectStats, FEATURED_SLIDESHOW_LIMIT
from investment_tracker.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SLIDE_DURATION_MS = 10000
DEFAULT_TICK_MS = 100

SLIDE_OVERVIEW = "overview"
SLIDE_PIPELINE = "pipeline"
SLIDE_TOP_SECTORS = "top_sectors"
SLIDE_PROJECT = "project"


@dataclass(frozen=True)
class Slide:
    kind: str
    project: Optional[Project] = None


def build_slides(stats: ProjectStats, featured_limit: int = FEATURED_SLIDESHOW_LIMIT) -> List[Slide]:
    slides = [Slide(SLIDE_OVERVIEW), Slide(SLIDE_PIPELINE), Slide(SLIDE_TOP_SECTORS)]
    slides.extend(Slide(SLIDE_PROJECT, p) for p in stats.featured[:featured_limit])
    return slides


class SlideshowController:
    """
    Auto-rotating presentation state: current slide index and the progress
    (0-100) of the current slide.

    tick() is the only time-driven transition. Manual navigation resets
    progress; pausing freezes both index and progress.
    """

    def __init__(
        self,
        stats: ProjectStats,
        slide_duration_ms: int = DEFAULT_SLIDE_DURATION_MS,
        tick_ms: int = DEFAULT_TICK_MS,
        featured_limit: int = FEATURED_SLIDESHOW_LIMIT,
    ):
        if slide_duration_ms <= 0 or tick_ms <= 0:
            raise ValueError("slide_duration_ms and tick_ms must be positive")
        self.stats = stats
        self.slides = build_slides(stats, featured_limit)
        self.slide_duration_ms = slide_duration_ms
        self.tick_ms = tick_ms
        self.index = 0
        self.progress = 0.0
        self.paused = False
        self.closed = False
        self._lock = threading.Lock()

    @property
    def total_slides(self) -> int:
        return len(self.slides)

    @property
    def current(self) -> Slide:
        return self.slides[self.index]

    @property
    def increment(self) -> float:
        return self.tick_ms / self.slide_duration_ms * 100

    # ======================================================
    # ⏱️ Time driven
    # ======================================================

    def tick(self) -> None:
        with self._lock:
            if self.paused or self.closed:
                return
            self.progress += self.increment
            if self.progress >= 100:
                self.index = (self.index + 1) % self.total_slides
                self.progress = 0.0

    # ======================================================
    # ⏯️ Pause
    # ======================================================

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        return self.paused

    # ======================================================
    # 🧭 Manual navigation
    # ======================================================

    def go_to(self, index: int) -> None:
        with self._lock:
            self.index = index % self.total_slides
            self.progress = 0.0

    def next(self) -> None:
        self.go_to(self.index + 1)

    def previous(self) -> None:
        self.go_to(self.index - 1)

    def handle_key(self, key: str) -> bool:
        '''Keyboard navigation. Returns False for keys that do nothing.'''
        if key in ("ArrowRight", "Right"):
            self.next()
        elif key in ("ArrowLeft", "Left"):
            self.previous()
        elif key in (" ", "Space", "Spacebar"):
            self.toggle_pause()
        elif key in ("Escape", "Esc"):
            self.closed = True
        else:
            return False
        return True


class SlideshowTimer:
    """
    Calls controller.tick() every tick_ms on a daemon thread.
    Can be stopped at any point and started again.
    """

    def __init__(self, controller: SlideshowController, tick_ms: Optional[int] = None):
        self.controller = controller
        self.tick_ms = tick_ms or controller.tick_ms
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        interval = self.tick_ms / 1000
        while not self._stop.wait(interval):
            if self.controller.closed:
                break
            self.controller.tick()

    def start(self) -> None:
        if self.running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="slideshow-timer", daemon=True)
        self._thread.start()
        logger.debug("Slideshow timer started")

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug("Slideshow timer stopped")
