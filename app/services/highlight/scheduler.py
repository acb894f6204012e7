"""Usage: per-key strong -> fade -> cleared highlight timers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

from app.core.config import settings

logger = logging.getLogger(__name__)


class HighlightStage(str, Enum):
    STRONG = "strong"
    FADE = "fade"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerLoop(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


StageListener = Callable[[str, "HighlightStage | None"], None]


@dataclass
class _KeyTimers:
    fade: TimerHandle
    clear: TimerHandle

    def cancel(self) -> None:
        # asyncio handles ignore repeated cancel() calls
        self.fade.cancel()
        self.clear.cancel()


class HighlightScheduler:
    """Flashes keys through ``strong`` then ``fade`` before dropping them.

    A key that is not tracked is in the ``absent`` stage; ``stage_of`` returns
    ``None`` for it. Timers run on an event loop (``asyncio`` by default) and
    every ``flash`` cancels the key's pending pair before scheduling a new one.
    """

    def __init__(
        self,
        *,
        strong_ms: int | None = None,
        fade_ms: int | None = None,
        loop: TimerLoop | None = None,
        on_change: StageListener | None = None,
    ) -> None:
        self.strong_ms = settings.highlight_strong_ms if strong_ms is None else strong_ms
        self.fade_ms = settings.highlight_fade_ms if fade_ms is None else fade_ms
        if self.strong_ms < 0 or self.fade_ms < 0:
            raise ValueError("Highlight durations must be non-negative")
        self._loop = loop
        self._on_change = on_change
        self._stages: dict[str, HighlightStage] = {}
        self._timers: dict[str, _KeyTimers] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def flash(self, key: str) -> None:
        if self._closed:
            raise RuntimeError("HighlightScheduler is closed")
        loop = self._get_loop()
        self._cancel_timers(key)
        self._set_stage(key, HighlightStage.STRONG)
        strong_s = self.strong_ms / 1000
        total_s = (self.strong_ms + self.fade_ms) / 1000
        self._timers[key] = _KeyTimers(
            fade=loop.call_later(strong_s, self._to_fade, key),
            clear=loop.call_later(total_s, self._to_absent, key),
        )

    def stage_of(self, key: str) -> HighlightStage | None:
        return self._stages.get(key)

    def stages(self) -> dict[str, HighlightStage]:
        return dict(self._stages)

    def cancel(self, key: str) -> None:
        """Drop ``key`` immediately, discarding its pending transitions."""

        self._cancel_timers(key)
        if key in self._stages:
            self._set_stage(key, None)

    def close(self) -> None:
        """Cancel every outstanding timer; no callback fires afterwards."""

        if self._closed:
            return
        self._closed = True
        for timers in self._timers.values():
            timers.cancel()
        self._timers.clear()
        self._stages.clear()
        logger.debug("Highlight scheduler closed")

    def _get_loop(self) -> TimerLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _cancel_timers(self, key: str) -> None:
        timers = self._timers.pop(key, None)
        if timers is not None:
            timers.cancel()

    def _to_fade(self, key: str) -> None:
        if self._closed or key not in self._timers:
            return
        self._set_stage(key, HighlightStage.FADE)

    def _to_absent(self, key: str) -> None:
        if self._closed or key not in self._timers:
            return
        self._timers.pop(key, None)
        self._set_stage(key, None)

    def _set_stage(self, key: str, stage: HighlightStage | None) -> None:
        if stage is None:
            self._stages.pop(key, None)
        else:
            self._stages[key] = stage
        if self._on_change is not None:
            self._on_change(key, stage)
