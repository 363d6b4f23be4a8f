"""
core/app.py — Pygame application shell

Handles the window, the fixed-cadence simulation clock and the scene
stack.  The engine never sees pygame: the app converts wall-clock
frames into simulation time and calls ``engine.update(now)`` once per
50 ms cycle.

    app = App(engine, title="Cloud Tycoon")
    app.push_scene(DatacenterScene())
    app.run()
"""

from __future__ import annotations
import pygame

from core.constants import MILLISECONDS_PER_CYCLE, TIME_UNITS_PER_CYCLE
from core.scene import Scene


class App:
    def __init__(self, engine, title: str = "Cloud Tycoon",
                 width: int = 960, height: int = 640):
        pygame.init()
        self.screen = pygame.display.set_mode((width, height))
        pygame.display.set_caption(title)
        self.clock = pygame.time.Clock()
        self.running = True
        self.paused = False
        self.fps = 60
        self.dt = 0.0

        self.engine = engine
        self._pending_ms = 0      # wall time not yet turned into cycles

        # Scene stack: only the top scene is active
        self._scenes: list[Scene] = []

        self.font = pygame.font.SysFont("monospace", 14)
        self.font_sm = pygame.font.SysFont("monospace", 11)

    # -- Scene management --

    @property
    def scene(self) -> Scene | None:
        return self._scenes[-1] if self._scenes else None

    def push_scene(self, scene: Scene):
        if self._scenes:
            self._scenes[-1].on_exit(self)
        self._scenes.append(scene)
        scene.on_enter(self)

    def pop_scene(self):
        if self._scenes:
            self._scenes[-1].on_exit(self)
            self._scenes.pop()
        if self._scenes:
            self._scenes[-1].on_enter(self)

    # -- Simulation clock --

    def advance(self, elapsed_ms: int) -> int:
        """Feed wall time to the engine in whole cycles.

        Returns the number of cycles run.  Nothing runs while paused,
        so the world is frozen exactly where it stopped.
        """
        if self.paused:
            return 0
        self._pending_ms += elapsed_ms
        cycles = 0
        while self._pending_ms >= MILLISECONDS_PER_CYCLE:
            self._pending_ms -= MILLISECONDS_PER_CYCLE
            self.engine.update(self.engine.state.time + TIME_UNITS_PER_CYCLE)
            cycles += 1
        return cycles

    # -- Main loop --

    def run(self):
        while self.running:
            elapsed = self.clock.tick(self.fps)
            self.dt = elapsed / 1000.0

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                elif self.scene:
                    self.scene.handle_event(event, self)

            if not self.scene:
                self.running = False
                break

            self.advance(elapsed)

            if self.scene:
                self.scene.update(self.dt, self)
                self.screen.fill((12, 14, 20))
                self.scene.draw(self.screen, self)
            pygame.display.flip()

        if self.scene:
            self.scene.on_exit(self)
        pygame.quit()

    # -- Convenience --

    def draw_text(self, surface: pygame.Surface, text: str, x: int, y: int,
                  color=(255, 255, 255), font=None):
        """Quick text draw. Returns the rect for layout chaining."""
        f = font or self.font
        img = f.render(text, True, color)
        return surface.blit(img, (x, y))
