"""
core/scene.py — Scene interface

A scene is one screen of the host.  The app holds a stack of them and
only the top one is driven.  Scenes read the engine through
``app.engine`` and change the world only by submitting actions:

    class MyScene(Scene):
        def on_enter(self, app):
            self.listen(app, "BillArrived", lambda e: self.notify("bill!"))

        def handle_event(self, event, app):
            if event.type == pygame.KEYDOWN and event.key == pygame.K_SPACE:
                app.engine.apply_action(OpClick(Tier.BASE))

        def draw(self, surface, app):
            app.draw_text(surface, f"funds {app.engine.state.funds}", 8, 8)

Bus subscriptions made with ``listen()`` last while the scene is on top;
the default ``on_exit`` drops them, so a covered scene hears nothing.
"""

from __future__ import annotations
from collections import deque
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    import pygame
    from core.app import App


class Scene:
    max_messages = 6

    def __init__(self):
        # Recent one-line notices, oldest first
        self.messages: deque[str] = deque(maxlen=self.max_messages)
        self._listening: list[tuple[str, Callable]] = []

    def notify(self, text: str):
        self.messages.append(text)

    def listen(self, app: App, event_type: str, handler: Callable):
        """Subscribe *handler* on the engine bus until this scene exits."""
        app.engine.bus.subscribe(event_type, handler)
        self._listening.append((event_type, handler))

    def stop_listening(self, app: App):
        for event_type, handler in self._listening:
            app.engine.bus.unsubscribe(event_type, handler)
        self._listening.clear()

    # ── Lifecycle hooks ──────────────────────────────────────────────

    def on_enter(self, app: App):
        """Called when this scene becomes the top of the stack."""

    def on_exit(self, app: App):
        """Called when this scene is removed, covered or the app quits."""
        self.stop_listening(app)

    def handle_event(self, event: pygame.event.Event, app: App):
        """One pygame input event."""

    def update(self, dt: float, app: App):
        """Per-frame bookkeeping after the engine ran.  dt is seconds."""

    def draw(self, surface: pygame.Surface, app: App):
        pass
