import logging

from soulgotchi.constants import BASELINE_STAT
from soulgotchi.models import LifeState, PetStats, default_prayer_status, default_ritual_counts

logger = logging.getLogger(__name__)


class LifecycleController:
    """Alive/dead is a function of the stats; nothing here stores a flag.

    A pet dies the moment health or spirituality reaches zero and stays dead
    until ``reset`` gives it a fresh start.
    """

    def __init__(self, baseline=BASELINE_STAT):
        self.baseline = baseline

    @staticmethod
    def state(stats: PetStats) -> LifeState:
        if stats.health <= 0 or stats.spirituality <= 0:
            return LifeState.DEAD
        return LifeState.ALIVE

    def is_alive(self, stats: PetStats) -> bool:
        return self.state(stats) is LifeState.ALIVE

    def reset(self, context, name, emoji=None, now=0.0):
        """Bring the pet in ``context`` back to the baseline, in place."""
        context.stats = PetStats.baseline(self.baseline)
        context.ritual_counts = default_ritual_counts()
        context.prayer_status = default_prayer_status()
        context.profile.name = name
        if emoji is not None:
            context.profile.emoji = emoji
        context.profile.age_hours = 0
        context.profile.last_decay = now
        logger.info("New pet %s %s starts at %.0f in every stat", name, context.profile.emoji, self.baseline)
        return context
