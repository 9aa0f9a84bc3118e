import logging

from soulgotchi.constants import (
    STAT_NAMES, RITUAL_STATS, RITUAL_BASE_GAIN, RITUAL_TYPE_BONUS,
    RITUAL_SET_SIZE, RITUAL_SET_BONUS, RITUAL_SET_TYPE_BONUS,
    RITUAL_SCALING_STEP, RITUAL_SCALING_CAP, RITUAL_SCALING_STATS, RITUAL_BONUS_POLICY,
    PRAYER_REWARD, PRAYER_REWARD_POLICY, REST_EFFECT, STUDY_EFFECT,
)
from soulgotchi.lifecycle import LifecycleController
from soulgotchi.models import PrayerSlot

logger = logging.getLogger(__name__)


def _add(effect, stat, amount):
    effect[stat] = effect.get(stat, 0.0) + amount


class SetCompletionBonus:
    """Every 33rd recitation of a ritual completes a set and earns a bonus."""
    name = "set"

    def __init__(self, set_size=RITUAL_SET_SIZE):
        self.set_size = set_size

    def bonus(self, ritual, count):
        effect = {}
        if count % self.set_size != 0:
            return effect
        for stat in STAT_NAMES:
            _add(effect, stat, RITUAL_SET_BONUS)
        stat = RITUAL_STATS.get(ritual)
        if stat:
            _add(effect, stat, RITUAL_SET_TYPE_BONUS)
        return effect


class ScalingBonus:
    """Legacy rule: a point per ten recitations, capped.

    The extra lands once on each of the ritual's own stat, spirituality and
    happiness.
    """
    name = "scaling"

    def bonus(self, ritual, count):
        extra = min(RITUAL_SCALING_CAP, count // RITUAL_SCALING_STEP)
        if extra <= 0:
            return {}
        stats = list(RITUAL_SCALING_STATS)
        stat = RITUAL_STATS.get(ritual)
        if stat and stat not in stats:
            stats.insert(0, stat)
        return {key: float(extra) for key in stats}


BONUS_POLICIES = {
    SetCompletionBonus.name: SetCompletionBonus,
    ScalingBonus.name: ScalingBonus,
}


def make_bonus_policy(name=RITUAL_BONUS_POLICY):
    try:
        return BONUS_POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown ritual bonus policy '{name}'") from None


class ActivityProcessor:
    """Applies user actions to a SimulationContext.

    Every action returns False without touching anything when the pet is
    dead. On success the shared decay timestamp moves to ``now``, so regular
    interaction keeps decay at bay.
    """

    def __init__(self, lifecycle=None, bonus_policy=None, prayer_policy=PRAYER_REWARD_POLICY):
        if prayer_policy not in ("once", "always"):
            raise ValueError(f"Unknown prayer reward policy '{prayer_policy}'")
        self.lifecycle = lifecycle or LifecycleController()
        self.bonus_policy = bonus_policy or make_bonus_policy()
        self.prayer_policy = prayer_policy
        self.last_message = None

    def _apply(self, context, effect, now, message):
        if effect:
            context.stats = context.stats.apply_delta(effect)
        context.profile.last_decay = now
        self.last_message = message
        return True

    def perform_ritual(self, context, name, now):
        if not self.lifecycle.is_alive(context.stats):
            return False
        # One read of the count feeds both the increment and the bonus
        count = context.ritual_counts.get(name, 0) + 1
        context.ritual_counts[name] = count

        effect = {stat: RITUAL_BASE_GAIN for stat in STAT_NAMES}
        stat = RITUAL_STATS.get(name)
        if stat:
            _add(effect, stat, RITUAL_TYPE_BONUS)
        bonus = self.bonus_policy.bonus(name, count)
        for key, amount in bonus.items():
            _add(effect, key, amount)
        if bonus and self.bonus_policy.name == SetCompletionBonus.name:
            logger.info("Completed a set of %s (%d)", name, count)
        return self._apply(context, effect, now, f"Recited: {name} ({count}x)")

    def complete_prayer(self, context, slot, now):
        if not self.lifecycle.is_alive(context.stats):
            return False
        # Raises ValueError for anything that is not one of the six slots
        slot = PrayerSlot(slot).value
        already_done = context.prayer_status.get(slot, False)
        context.prayer_status[slot] = True
        effect = PRAYER_REWARD
        if already_done and self.prayer_policy == "once":
            effect = {}
        return self._apply(context, effect, now, f"Performed: {slot} prayer")

    def rest(self, context, now):
        if not self.lifecycle.is_alive(context.stats):
            return False
        return self._apply(context, REST_EFFECT, now, "Resting...")

    def study(self, context, topic, now):
        if not self.lifecycle.is_alive(context.stats):
            return False
        return self._apply(context, STUDY_EFFECT, now, f"Learning: {topic}")
