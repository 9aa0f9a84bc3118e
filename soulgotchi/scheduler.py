import logging

import pygame

from soulgotchi.constants import (
    STAT_NAMES, TIME_SCALE, DECAY_CHECK_SECONDS, DECAY_WINDOW_SECONDS,
    DECAY_AMOUNT, AGE_TICK_SECONDS,
)

logger = logging.getLogger(__name__)


class TimerHandle:
    """Returned by ``every``; pass it back to ``cancel``."""

    def __init__(self, event_type, period, callback):
        self.event_type = event_type
        self.period = period
        self.callback = callback
        self.active = True

    def __repr__(self):
        return f"TimerHandle(event_type={self.event_type}, period={self.period}, active={self.active})"


class PygameTimers:
    """Periodic callbacks driven by pygame timer events.

    Each task owns a custom event type, posted by ``pygame.time.set_timer``.
    The game loop feeds every event to ``dispatch``; callbacks therefore run on
    the loop's thread, one at a time. Cancelling stops the timer and forgets
    the handle, so an event already sitting in the queue is dropped. Pygame
    only hands out a limited number of custom types, so cancelled ones are
    recycled.
    """

    def __init__(self):
        self._handles = {}
        self._free_types = []

    def every(self, seconds, callback):
        if self._free_types:
            event_type = self._free_types.pop()
        else:
            event_type = pygame.event.custom_type()
        handle = TimerHandle(event_type, seconds, callback)
        self._handles[event_type] = handle
        pygame.time.set_timer(event_type, max(1, int(seconds * 1000)))
        return handle

    def cancel(self, handle):
        if handle is None or not handle.active:
            return
        pygame.time.set_timer(handle.event_type, 0)
        handle.active = False
        handle.callback = None
        if self._handles.pop(handle.event_type, None) is handle:
            # Stale events of this type may still be queued
            pygame.event.clear(handle.event_type)
            self._free_types.append(handle.event_type)

    def dispatch(self, event):
        """Run the callback owning ``event``. Returns True if it was a timer event."""
        handle = self._handles.get(event.type)
        if handle is None or not handle.active:
            return False
        handle.callback()
        return True


class DecayScheduler:
    """Owns the two periodic obligations of a living pet.

    The decay check polls every few seconds but only drains stats once a full
    window has passed since the shared ``last_decay`` timestamp, so the drain
    rate does not depend on the polling cadence. The age tick counts hours of
    continuous life.
    """

    def __init__(self, timers, time_scale=TIME_SCALE,
                 check_seconds=DECAY_CHECK_SECONDS, window_seconds=DECAY_WINDOW_SECONDS,
                 decay_amount=DECAY_AMOUNT, age_seconds=AGE_TICK_SECONDS):
        self.timers = timers
        self.time_scale = time_scale
        self.check_seconds = check_seconds
        self.window_seconds = window_seconds
        self.decay_amount = decay_amount
        self.age_seconds = age_seconds
        self._decay_handle = None
        self._age_handle = None

    @property
    def window(self):
        """Decay window in real seconds after time scaling."""
        return self.window_seconds / self.time_scale

    @property
    def running(self):
        return self._decay_handle is not None or self._age_handle is not None

    def start(self, on_decay_check, on_age_tick):
        self.stop()
        self._decay_handle = self.timers.every(self.check_seconds / self.time_scale, on_decay_check)
        self._age_handle = self.timers.every(self.age_seconds / self.time_scale, on_age_tick)
        logger.debug("Scheduler started (check %.2fs, window %.2fs)", self.check_seconds, self.window_seconds)

    def stop(self):
        # Cancel first, then drop the reference
        if self._decay_handle is not None:
            self.timers.cancel(self._decay_handle)
            self._decay_handle = None
        if self._age_handle is not None:
            self.timers.cancel(self._age_handle)
            self._age_handle = None

    def seconds_until_decay(self, last_decay, now):
        return max(0.0, self.window - (now - last_decay))

    def decay(self, context, now):
        """Drain every stat once if the window has elapsed. Returns True if it fired."""
        if now - context.profile.last_decay < self.window:
            return False
        context.stats = context.stats.apply_delta({stat: -self.decay_amount for stat in STAT_NAMES})
        context.profile.last_decay = now
        logger.debug("Decay tick: %s", context.stats)
        return True

    def age(self, context):
        context.profile.age_hours += 1
        logger.info("%s is now %d hours old", context.profile.name, context.profile.age_hours)
