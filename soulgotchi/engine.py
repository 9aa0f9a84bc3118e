import math
import time
import logging
import threading
from dataclasses import replace

from soulgotchi.constants import DEFAULT_NAME, DEFAULT_EMOJI
from soulgotchi.models import Mood, PetStats, SimulationContext, classify_mood, default_prayer_status
from soulgotchi.lifecycle import LifecycleController
from soulgotchi.activities import ActivityProcessor
from soulgotchi.scheduler import DecayScheduler
from soulgotchi.database import SaveWorker
from soulgotchi import progression

logger = logging.getLogger(__name__)


class SoulGotchiEngine:
    """One pet, one owner.

    The engine holds the only SimulationContext for a session and serialises
    every change to it (user actions, timer ticks, reset, load) behind one
    lock. After each change it re-checks death, refreshes the mood and hands a
    snapshot to the save worker.

    ``timers`` is the periodic-task backend (``scheduler.PygameTimers`` in the
    game). ``gateway`` is optional; without one the pet lives in memory only.
    """

    def __init__(self, timers, gateway=None, clock=time.time, name=DEFAULT_NAME, emoji=DEFAULT_EMOJI,
                 lifecycle=None, processor=None, scheduler=None, async_saves=True, on_mood_improved=None):
        self.clock = clock
        self.lifecycle = lifecycle or LifecycleController()
        self.processor = processor or ActivityProcessor(self.lifecycle)
        self.scheduler = scheduler or DecayScheduler(timers)
        self.gateway = gateway
        self.saver = SaveWorker(gateway) if gateway is not None and async_saves else None
        self.on_mood_improved = on_mood_improved
        self._lock = threading.RLock()
        self._active = False
        self.context = SimulationContext.new(name, emoji, now=clock())
        self.context.stats = PetStats.baseline(self.lifecycle.baseline)
        self._mood = classify_mood(self.context.stats)

    # --- lifecycle of the session ---

    def load(self):
        """Replace the current pet with the saved one. Returns True if one was found."""
        if self.gateway is None:
            return False
        loaded = self.gateway.load(now=self.clock())
        if loaded is None:
            return False
        with self._lock:
            self.context = loaded
            self._mood = classify_mood(loaded.stats)
            if not self.is_alive:
                self.scheduler.stop()
                logger.info("Loaded %s, who has passed away", loaded.profile.name)
            elif self._active and not self.scheduler.running:
                self._start_timers()
        return True

    def start(self):
        with self._lock:
            self._active = True
            if self.is_alive:
                self._start_timers()

    def stop(self):
        """Stop ticking. Storage stays open and ``start`` resumes the timers."""
        with self._lock:
            self._active = False
            self.scheduler.stop()

    def shutdown(self):
        """Stop ticking, write the final snapshot and release storage."""
        with self._lock:
            self.stop()
            snapshot = self.context.to_record()
        if self.saver is not None:
            self.saver.submit(snapshot)
            self.saver.close()
        elif self.gateway is not None:
            self.gateway.save(snapshot)
        if self.gateway is not None:
            self.gateway.close()

    def _start_timers(self):
        self.scheduler.start(self._on_decay_check, self._on_age_tick)

    # --- timer callbacks ---

    def _on_decay_check(self):
        with self._lock:
            if not self.is_alive:
                self.scheduler.stop()
                return
            if self.scheduler.decay(self.context, self.clock()):
                self._after_mutation()

    def _on_age_tick(self):
        with self._lock:
            if not self.is_alive:
                self.scheduler.stop()
                return
            self.scheduler.age(self.context)
            self._persist()

    # --- actions ---

    def perform_ritual(self, name):
        with self._lock:
            return self._finish(self.processor.perform_ritual(self.context, name, self.clock()))

    def complete_prayer(self, slot):
        with self._lock:
            return self._finish(self.processor.complete_prayer(self.context, slot, self.clock()))

    def rest(self):
        with self._lock:
            return self._finish(self.processor.rest(self.context, self.clock()))

    def study(self, topic):
        with self._lock:
            return self._finish(self.processor.study(self.context, topic, self.clock()))

    def reset_pet(self, name=DEFAULT_NAME, emoji=None):
        with self._lock:
            self.scheduler.stop()
            self.lifecycle.reset(self.context, name or DEFAULT_NAME, emoji, now=self.clock())
            self.processor.last_message = None
            self._mood = classify_mood(self.context.stats)
            if self._active and self.is_alive:
                self._start_timers()
            self._persist()

    def reset_daily_activities(self):
        """Un-mark every prayer; called by whoever tracks the day rolling over."""
        with self._lock:
            self.context.prayer_status = default_prayer_status()
            self.processor.last_message = None
            self._persist()

    def _finish(self, succeeded):
        if succeeded:
            self._after_mutation()
        return succeeded

    def _after_mutation(self):
        if not self.is_alive and self.scheduler.running:
            self.scheduler.stop()
            logger.info("%s has passed away at %d hours", self.context.profile.name, self.context.profile.age_hours)

        previous, self._mood = self._mood, classify_mood(self.context.stats)
        levels = Mood.improved(previous, self._mood)
        if levels and self.on_mood_improved is not None:
            self.on_mood_improved(previous, self._mood, levels)
        self._persist()

    def _persist(self):
        if self.gateway is None:
            return
        snapshot = self.context.to_record()
        if self.saver is not None:
            self.saver.submit(snapshot)
        else:
            self.gateway.save(snapshot)

    # --- read accessors ---

    @property
    def stats(self):
        with self._lock:
            return replace(self.context.stats)

    @property
    def mood(self):
        with self._lock:
            return self._mood

    @property
    def age_hours(self):
        with self._lock:
            return self.context.profile.age_hours

    @property
    def is_alive(self):
        with self._lock:
            return self.lifecycle.is_alive(self.context.stats)

    @property
    def profile(self):
        with self._lock:
            return replace(self.context.profile)

    @property
    def ritual_counts(self):
        with self._lock:
            return dict(self.context.ritual_counts)

    @property
    def prayer_status(self):
        with self._lock:
            return dict(self.context.prayer_status)

    @property
    def last_action_message(self):
        return self.processor.last_message

    @property
    def seconds_until_next_decay(self):
        with self._lock:
            return self.scheduler.seconds_until_decay(self.context.profile.last_decay, self.clock())

    def time_until_decay(self):
        """Whole seconds left, rounded up, as shown to the player."""
        return math.ceil(self.seconds_until_next_decay)

    def achievements(self):
        with self._lock:
            return progression.achievements(self.context.stats, self.context.profile.age_hours)

    def life_stage(self):
        return progression.life_stage(self.age_hours)

    def has_mastery(self):
        return progression.has_mastery(self.stats)

    def snapshot(self):
        with self._lock:
            return self.context.to_record()
