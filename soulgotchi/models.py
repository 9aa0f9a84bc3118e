import datetime
from enum import Enum
from dataclasses import dataclass, field, fields, replace

from soulgotchi.constants import (
    STAT_NAMES, STAT_MIN, STAT_MAX, BASELINE_STAT, MOOD_LOW, MOOD_HIGH,
    RITUAL_STATS, PRAYER_SLOTS, DEFAULT_NAME, DEFAULT_EMOJI,
    KEY_PET_STATE, KEY_LAST_INTERACTION, KEY_PRAYER_STATUS, KEY_RITUAL_COUNTS,
)


class Mood(Enum):
    """
    Display mood derived from the stats, never stored as truth.
    Members are declared worst first; that order is the improvement scale.
    """
    SAD = 'sad'
    HUNGRY = 'hungry'
    TIRED = 'tired'
    CONTENT = 'content'
    HAPPY = 'happy'

    @property
    def rank(self):
        return list(Mood).index(self)

    def __lt__(self, other):
        if not isinstance(other, Mood):
            return NotImplemented
        return self.rank < other.rank

    @staticmethod
    def improved(previous, current):
        """Number of ranks the mood rose, 0 if it stayed or dropped."""
        return max(0, current.rank - previous.rank)

    @classmethod
    def _missing_(cls, value):
        # Older saves stored the capitalised badge label ('Happy')
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return super()._missing_(value)


class LifeState(Enum):
    ALIVE = 'alive'
    DEAD = 'dead'


class PrayerSlot(Enum):
    """The six daily prayer times, in the order of the day."""
    FAJR = 'Fajr'
    DHUHR = 'Dhuhr'
    ASR = 'Asr'
    MAGHRIB = 'Maghrib'
    ISHA = 'Isha'
    TAHAJJUD = 'Tahajjud'

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return super()._missing_(value)


@dataclass
class PetStats:
    """Four attributes on a 0-100 scale. Every mutation goes through apply_delta."""
    health: float = BASELINE_STAT
    spirituality: float = BASELINE_STAT
    energy: float = BASELINE_STAT
    happiness: float = BASELINE_STAT

    @staticmethod
    def clamp(value):
        return max(STAT_MIN, min(STAT_MAX, float(value)))

    @classmethod
    def baseline(cls, value=BASELINE_STAT):
        return cls(value, value, value, value)

    def apply_delta(self, delta):
        """Return a new PetStats with each given delta added and clamped.

        Fields missing from ``delta`` are carried over untouched.
        """
        changes = {}
        for key, amount in delta.items():
            if key not in STAT_NAMES:
                raise KeyError(f"Unknown stat '{key}'")
            changes[key] = self.clamp(getattr(self, key) + amount)
        return replace(self, **changes)

    def to_dict(self):
        return {f.name: getattr(self, f.name) for f in fields(self)}


def classify_mood(stats: PetStats) -> Mood:
    """Severity-ranked mood: low health/spirit beats everything else."""
    if stats.health < MOOD_LOW or stats.spirituality < MOOD_LOW:
        return Mood.SAD
    if stats.energy < MOOD_LOW:
        return Mood.TIRED
    if stats.happiness < MOOD_LOW:
        return Mood.HUNGRY
    if stats.health > MOOD_HIGH and stats.spirituality > MOOD_HIGH and stats.happiness > MOOD_HIGH:
        return Mood.HAPPY
    return Mood.CONTENT


def default_ritual_counts():
    return {name: 0 for name in RITUAL_STATS}


def default_prayer_status():
    return {slot: False for slot in PRAYER_SLOTS}


@dataclass
class PetProfile:
    name: str = DEFAULT_NAME
    emoji: str = DEFAULT_EMOJI
    age_hours: int = 0
    last_decay: float = 0.0  # epoch seconds, shared by decay and interactions


def _to_iso(timestamp):
    return datetime.datetime.fromtimestamp(timestamp, tz=datetime.timezone.utc).isoformat()


def _from_iso(text):
    # Browser-era saves end in 'Z'
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.timestamp()


@dataclass
class SimulationContext:
    """Everything one pet is made of. Owned by exactly one engine."""
    stats: PetStats = field(default_factory=PetStats.baseline)
    ritual_counts: dict = field(default_factory=default_ritual_counts)
    prayer_status: dict = field(default_factory=default_prayer_status)
    profile: PetProfile = field(default_factory=PetProfile)

    @classmethod
    def new(cls, name=DEFAULT_NAME, emoji=DEFAULT_EMOJI, now=0.0):
        return cls(profile=PetProfile(name=name, emoji=emoji, age_hours=0, last_decay=now))

    def to_record(self):
        """Flat keyed record, one entry per storage key."""
        pet_state = self.stats.to_dict()
        pet_state.update({
            'age': self.profile.age_hours,
            'name': self.profile.name,
            'emoji': self.profile.emoji,
        })
        return {
            KEY_PET_STATE: pet_state,
            KEY_LAST_INTERACTION: _to_iso(self.profile.last_decay),
            KEY_PRAYER_STATUS: dict(self.prayer_status),
            KEY_RITUAL_COUNTS: dict(self.ritual_counts),
        }

    @classmethod
    def from_record(cls, record, now):
        """Rebuild a context from ``to_record`` output.

        Raises KeyError/TypeError/ValueError on a malformed pet state; the
        optional keys fall back to their defaults.
        """
        pet_state = record[KEY_PET_STATE]
        if not isinstance(pet_state, dict):
            raise TypeError("pet state must be a mapping")
        stats = PetStats(**{name: PetStats.clamp(pet_state[name]) for name in STAT_NAMES})

        age = int(pet_state.get('age', 0))
        if age < 0:
            raise ValueError(f"negative age {age}")

        last = record.get(KEY_LAST_INTERACTION)
        last_decay = _from_iso(last) if last else now
        # Clock skew: never trust a timestamp from the future
        last_decay = min(last_decay, now)

        prayers = default_prayer_status()
        saved_prayers = record.get(KEY_PRAYER_STATUS) or {}
        for slot in PRAYER_SLOTS:
            prayers[slot] = bool(saved_prayers.get(slot, False))

        counts = default_ritual_counts()
        for name, count in (record.get(KEY_RITUAL_COUNTS) or {}).items():
            counts[str(name)] = max(0, int(count))

        profile = PetProfile(
            name=str(pet_state.get('name', DEFAULT_NAME)),
            emoji=str(pet_state.get('emoji', DEFAULT_EMOJI)),
            age_hours=age,
            last_decay=last_decay,
        )
        return cls(stats=stats, ritual_counts=counts, prayer_status=prayers, profile=profile)
