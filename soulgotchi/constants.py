import os

# --- GLOBAL CONFIGURATION ---
SCREEN_WIDTH = 480
SCREEN_HEIGHT = 320
FPS = 30
DB_FILE = os.getenv("SOULGOTCHI_DB_FILE", "soulgotchi.db")
SAVE_FILE = os.getenv("SOULGOTCHI_SAVE_FILE", "soulgotchi_save.json")
STORAGE_BACKEND = os.getenv("SOULGOTCHI_STORAGE", "sqlite")  # sqlite | json
# Time scaling for development/testing. 1 = real time, 10 = 10x faster!
TIME_SCALE = float(os.getenv("SOULGOTCHI_TIME_SCALE", "1.0"))

DEFAULT_NAME = "SoulGotchi"
DEFAULT_EMOJI = "🥺"

# --- STATS ---
STAT_NAMES = ("health", "spirituality", "energy", "happiness")
STAT_MIN = 0.0
STAT_MAX = 100.0
# Every new or reset pet starts here
BASELINE_STAT = float(os.getenv("SOULGOTCHI_BASELINE_STAT", "20"))

# --- DECAY / AGE (real seconds, divided by TIME_SCALE) ---
DECAY_CHECK_SECONDS = 5.0
DECAY_WINDOW_SECONDS = 10.0
DECAY_AMOUNT = 1.0
AGE_TICK_SECONDS = 3600.0

# --- MOOD THRESHOLDS ---
MOOD_LOW = 30.0
MOOD_HIGH = 70.0

# --- RITUALS (dhikr) ---
# name -> stat that receives the type bonus
RITUAL_STATS = {
    'Subhanallah': 'spirituality',
    'Alhamdulillah': 'happiness',
    'Allahu Akbar': 'energy',
    'Astaghfirullah': 'health',
}
RITUAL_BASE_GAIN = 0.5
RITUAL_TYPE_BONUS = 0.5
RITUAL_SET_SIZE = 33
RITUAL_SET_BONUS = 3.0
RITUAL_SET_TYPE_BONUS = 2.0
# Legacy continuous scaling: one extra point per 10 recitations, capped
RITUAL_SCALING_STEP = 10
RITUAL_SCALING_CAP = 10
RITUAL_SCALING_STATS = ('spirituality', 'happiness')
RITUAL_BONUS_POLICY = os.getenv("SOULGOTCHI_RITUAL_BONUS", "set")  # set | scaling

# --- PRAYERS ---
PRAYER_SLOTS = ('Fajr', 'Dhuhr', 'Asr', 'Maghrib', 'Isha', 'Tahajjud')
PRAYER_REWARD = {'spirituality': 15.0, 'happiness': 10.0, 'energy': 8.0, 'health': 8.0}
PRAYER_REWARD_POLICY = os.getenv("SOULGOTCHI_PRAYER_REWARD", "once")  # once | always

# --- REST / STUDY ---
REST_EFFECT = {'energy': 20.0, 'health': 5.0}
STUDY_EFFECT = {'spirituality': 5.0, 'happiness': 5.0, 'energy': -5.0}
STUDY_TOPICS = ('Quran', 'Hadith')

# --- PROGRESSION ---
ACHIEVEMENT_TIERS = (50.0, 75.0, 100.0)
ACHIEVEMENT_NAMES = {
    'spirituality': ("Spiritual Seeker", "Spiritual Guide", "Spiritual Master"),
    'health': ("Good Health", "Vibrant Health", "Peak Health"),
    'energy': ("Active", "Energetic", "Boundless Energy"),
    'happiness': ("Content", "Joyful", "Blissful"),
}
# (minimum age in hours, title), highest first
LIFE_STAGES = (
    (24, "Wise Elder"),
    (12, "Mature Soul"),
    (6, "Growing Soul"),
    (0, "Newborn"),
)

# --- STORAGE KEYS ---
KEY_PET_STATE = "soulgotchi-pet-state"
KEY_LAST_INTERACTION = "soulgotchi-last-interaction"
KEY_PRAYER_STATUS = "soulgotchi-prayer-status"
KEY_RITUAL_COUNTS = "soulgotchi-dhikr-counts"
STORAGE_KEYS = (KEY_PET_STATE, KEY_LAST_INTERACTION, KEY_PRAYER_STATUS, KEY_RITUAL_COUNTS)

# --- RETRO UI PALETTE ---
COLOR_BG = (40, 44, 52)
