#!/usr/bin/env python3
import os
import sys
import logging

import pygame

from soulgotchi.constants import (
    SCREEN_WIDTH, SCREEN_HEIGHT, FPS, COLOR_BG, DEFAULT_NAME,
    RITUAL_STATS, STUDY_TOPICS, STORAGE_BACKEND,
)
from soulgotchi.database import open_gateway
from soulgotchi.engine import SoulGotchiEngine
from soulgotchi.scheduler import PygameTimers

logger = logging.getLogger(__name__)

RITUAL_KEYS = dict(zip((pygame.K_1, pygame.K_2, pygame.K_3, pygame.K_4), RITUAL_STATS))
PRAYER_KEYS = {
    pygame.K_f: 'Fajr',
    pygame.K_d: 'Dhuhr',
    pygame.K_a: 'Asr',
    pygame.K_m: 'Maghrib',
    pygame.K_i: 'Isha',
    pygame.K_t: 'Tahajjud',
}


class GameLoop:
    """Drives one engine from the pygame event queue.

    Drawing belongs to the front end; this loop only pumps timer events,
    maps keys to actions and keeps the window caption as a status line.
    """
    def __init__(self, gateway=None, name=DEFAULT_NAME):
        pygame.init()
        try:
            self.screen = pygame.display.set_mode((SCREEN_WIDTH, SCREEN_HEIGHT))
        except pygame.error as e:
            # Fallback for headless or limited environments
            logger.warning("No display available (%s); running without a window", e)
            self.screen = None
        self.clock = pygame.time.Clock()
        self.timers = PygameTimers()
        self.engine = SoulGotchiEngine(self.timers, gateway=gateway, name=name,
                                       on_mood_improved=self._mood_improved)
        if not self.engine.load():
            self.engine.reset_pet(name)
        self.engine.start()
        self._study_index = 0
        self._caption = None

    def _mood_improved(self, previous, current, levels):
        logger.info("Mood improved from %s to %s (+%d)", previous.value, current.value, levels)

    def handle_key(self, key):
        """Map a key press to an action. Returns False when the player quits."""
        if key == pygame.K_ESCAPE:
            return False
        if key == pygame.K_n:
            self.engine.reset_pet(self.engine.profile.name)
        elif not self.engine.is_alive:
            # Only a fresh start is offered once the pet has passed away
            return True
        elif key in RITUAL_KEYS:
            self.engine.perform_ritual(RITUAL_KEYS[key])
        elif key in PRAYER_KEYS:
            self.engine.complete_prayer(PRAYER_KEYS[key])
        elif key == pygame.K_r:
            self.engine.rest()
        elif key == pygame.K_s:
            topic = STUDY_TOPICS[self._study_index % len(STUDY_TOPICS)]
            self._study_index += 1
            self.engine.study(topic)
        return True

    def status_line(self):
        engine = self.engine
        profile = engine.profile
        if not engine.is_alive:
            return f"{profile.name} lived for {profile.age_hours} hours. Press N to start again"
        s = engine.stats
        return (f"{profile.emoji} {profile.name} ({engine.mood.value}) "
                f"H{s.health:.0f} S{s.spirituality:.0f} E{s.energy:.0f} J{s.happiness:.0f} "
                f"age {profile.age_hours}h, decay in {engine.time_until_decay()}s")

    def step(self):
        """Process a single loop iteration (useful for headless tests). Returns False to stop."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if self.timers.dispatch(event):
                continue
            if event.type == pygame.KEYDOWN and not self.handle_key(event.key):
                return False

        caption = self.status_line()
        if caption != self._caption:
            pygame.display.set_caption(caption)
            self._caption = caption
        if self.screen is not None:
            self.screen.fill(COLOR_BG)
            pygame.display.flip()
        self.clock.tick(FPS)
        return True

    def run(self):
        running = True
        while running:
            running = self.step()
        self.close()

    def close(self):
        self.engine.shutdown()
        pygame.quit()


def main():
    logging.basicConfig(
        level=os.getenv("SOULGOTCHI_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    name = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_NAME
    game = GameLoop(gateway=open_gateway(STORAGE_BACKEND), name=name)
    game.run()


if __name__ == "__main__":
    main()
