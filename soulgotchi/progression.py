"""Titles earned from stats and age. Display only; nothing here feeds back into the rules."""

from soulgotchi.constants import ACHIEVEMENT_TIERS, ACHIEVEMENT_NAMES, LIFE_STAGES, STAT_MAX


def achievements(stats, age_hours):
    """Highest tier reached on each stat track, then on the age track."""
    earned = []
    for stat, names in ACHIEVEMENT_NAMES.items():
        value = getattr(stats, stat)
        reached = [name for tier, name in zip(ACHIEVEMENT_TIERS, names) if value >= tier]
        if reached:
            earned.append(reached[-1])
    stage = life_stage(age_hours)
    if age_hours >= LIFE_STAGES[-2][0]:
        earned.append(stage)
    return earned


def has_mastery(stats):
    return all(value >= STAT_MAX for value in stats.to_dict().values())


def life_stage(age_hours):
    for min_age, title in LIFE_STAGES:
        if age_hours >= min_age:
            return title
    return LIFE_STAGES[-1][1]
