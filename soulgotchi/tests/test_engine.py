import random

from soulgotchi.constants import PRAYER_SLOTS, RITUAL_STATS
from soulgotchi.database import DatabaseManager, JsonSaveFile
from soulgotchi.engine import SoulGotchiEngine
from soulgotchi.models import Mood, PetStats
from conftest import ManualTimers


def test_new_engine_starts_at_baseline(engine):
    assert engine.stats == PetStats(20, 20, 20, 20)
    assert engine.is_alive
    assert engine.mood is Mood.SAD
    assert engine.age_hours == 0
    assert engine.profile.name == "Nur"
    assert engine.ritual_counts == {name: 0 for name in RITUAL_STATS}
    assert engine.prayer_status == {slot: False for slot in PRAYER_SLOTS}


def test_first_prayer_from_baseline(engine):
    assert engine.complete_prayer('Fajr')
    assert engine.stats == PetStats(health=28, spirituality=35, energy=28, happiness=30)
    assert engine.complete_prayer('Fajr')
    assert engine.stats == PetStats(health=28, spirituality=35, energy=28, happiness=30)


def test_death_blocks_actions(engine):
    engine.context.stats = PetStats(health=0, spirituality=40, energy=50, happiness=50)
    assert engine.is_alive is False
    assert engine.rest() is False
    assert engine.perform_ritual('Subhanallah') is False
    assert engine.stats == PetStats(health=0, spirituality=40, energy=50, happiness=50)


def test_reset_after_death(engine, timers):
    engine.perform_ritual('Subhanallah')
    engine.complete_prayer('Dhuhr')
    engine.context.stats = PetStats(health=1, spirituality=50, energy=50, happiness=50)
    engine.context.profile.age_hours = 5
    timers.advance(10)
    assert not engine.is_alive

    engine.reset_pet("Nur")
    assert engine.is_alive
    assert engine.stats == PetStats.baseline(20)
    assert all(count == 0 for count in engine.ritual_counts.values())
    assert not any(engine.prayer_status.values())
    assert engine.age_hours == 0
    assert engine.last_action_message is None


def test_reset_keeps_emoji_unless_given(engine):
    engine.reset_pet("Amal")
    assert engine.profile.emoji == "🥺"
    engine.reset_pet("Amal", emoji="🦊")
    assert engine.profile.name == "Amal"
    assert engine.profile.emoji == "🦊"


def test_reset_daily_activities(engine):
    engine.complete_prayer('Asr')
    engine.complete_prayer('Isha')
    engine.reset_daily_activities()
    assert not any(engine.prayer_status.values())
    # A new day means the reward is available again
    before = engine.stats.spirituality
    engine.complete_prayer('Asr')
    assert engine.stats.spirituality == before + 15


def test_mood_improvement_hook(clock):
    seen = []
    eng = SoulGotchiEngine(ManualTimers(clock), clock=clock,
                           on_mood_improved=lambda prev, cur, levels: seen.append((prev, cur, levels)))
    eng.complete_prayer('Fajr')
    assert seen == []
    eng.rest()
    assert eng.mood is Mood.CONTENT
    assert seen == [(Mood.SAD, Mood.CONTENT, 3)]
    eng.study('Quran')
    assert len(seen) == 1


def test_stats_stay_in_range_under_random_play(engine, timers):
    rng = random.Random(1234)
    moves = [
        lambda: engine.perform_ritual(rng.choice(list(RITUAL_STATS) + ['Salawat'])),
        lambda: engine.complete_prayer(rng.choice(PRAYER_SLOTS)),
        engine.rest,
        lambda: engine.study('Quran'),
        lambda: timers.advance(rng.choice([1, 5, 10, 30])),
        engine.reset_daily_activities,
    ]
    for _ in range(2000):
        rng.choice(moves)()
        for value in engine.stats.to_dict().values():
            assert 0.0 <= value <= 100.0
        if not engine.is_alive:
            assert not engine.scheduler.running
            engine.reset_pet("Nur")


def test_achievements_and_stage(engine):
    engine.context.stats = PetStats(100, 80, 55, 10)
    engine.context.profile.age_hours = 13
    assert engine.achievements() == ["Spiritual Guide", "Peak Health", "Active", "Mature Soul"]
    assert engine.life_stage() == "Mature Soul"
    assert not engine.has_mastery()
    engine.context.stats = PetStats(100, 100, 100, 100)
    assert engine.has_mastery()


def test_progress_survives_restart_json(tmp_path, clock):
    path = str(tmp_path / "pet_save.json")
    eng = SoulGotchiEngine(ManualTimers(clock), gateway=JsonSaveFile(path), clock=clock,
                           name="Nur", async_saves=False)
    eng.perform_ritual('Subhanallah')
    eng.complete_prayer('Maghrib')
    eng.shutdown()

    clock.now += 3
    eng2 = SoulGotchiEngine(ManualTimers(clock), gateway=JsonSaveFile(path), clock=clock, async_saves=False)
    assert eng2.load()
    assert eng2.stats == eng.stats
    assert eng2.ritual_counts['Subhanallah'] == 1
    assert eng2.prayer_status['Maghrib'] is True
    assert eng2.profile.name == "Nur"
    # The shared timestamp comes back, so the decay window carries on
    assert eng2.seconds_until_next_decay == 7


def test_progress_survives_restart_sqlite(tmp_path, clock):
    path = str(tmp_path / "pet.db")
    eng = SoulGotchiEngine(ManualTimers(clock), gateway=DatabaseManager(path), clock=clock, name="Nur")
    for _ in range(33):
        eng.perform_ritual('Alhamdulillah')
    eng.saver.flush()
    expected = eng.stats

    eng2 = SoulGotchiEngine(ManualTimers(clock), gateway=DatabaseManager(path), clock=clock)
    assert eng2.load()
    assert eng2.stats == expected
    assert eng2.ritual_counts['Alhamdulillah'] == 33
    eng.shutdown()
    eng2.shutdown()


def test_loading_a_dead_pet_keeps_timers_off(tmp_path, clock):
    path = str(tmp_path / "pet_save.json")
    eng = SoulGotchiEngine(ManualTimers(clock), gateway=JsonSaveFile(path), clock=clock, async_saves=False)
    eng.context.stats = PetStats(health=0, spirituality=10, energy=10, happiness=10)
    eng.shutdown()

    timers = ManualTimers(clock)
    eng2 = SoulGotchiEngine(timers, gateway=JsonSaveFile(path), clock=clock, async_saves=False)
    eng2.start()
    assert eng2.scheduler.running
    assert eng2.load()
    assert not eng2.is_alive
    assert not eng2.scheduler.running
    assert timers.active == []


def test_load_without_save_returns_false(tmp_path, clock):
    eng = SoulGotchiEngine(ManualTimers(clock), gateway=JsonSaveFile(str(tmp_path / "none.json")),
                           clock=clock, async_saves=False)
    assert eng.load() is False
    assert eng.stats == PetStats.baseline()


def test_stop_pauses_timers_and_keeps_storage_open(tmp_path, clock):
    path = str(tmp_path / "pet.db")
    timers = ManualTimers(clock)
    eng = SoulGotchiEngine(timers, gateway=DatabaseManager(path), clock=clock, name="Nur", async_saves=False)
    eng.start()
    eng.stop()
    assert not eng.scheduler.running
    assert timers.active == []

    timers.advance(60)
    assert eng.stats == PetStats.baseline()
    # Actions still work and still reach the database
    assert eng.rest()
    assert DatabaseManager(path).load(now=clock.now).stats == eng.stats

    eng.start()
    assert eng.scheduler.running
    eng.shutdown()


def test_sqlite_in_unopenable_location_still_plays(tmp_path, clock):
    gateway = DatabaseManager(str(tmp_path / "missing" / "pet.db"))
    eng = SoulGotchiEngine(ManualTimers(clock), gateway=gateway, clock=clock, name="Nur", async_saves=False)
    eng.start()
    assert eng.load() is False
    assert eng.rest()
    assert eng.stats == PetStats(health=25, spirituality=20, energy=40, happiness=20)
    eng.shutdown()
