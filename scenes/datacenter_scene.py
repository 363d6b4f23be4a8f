"""
scenes/datacenter_scene.py — Debug host for the data center

A text-only view over the engine: it prints the aggregate counters,
every tier's service line, the node list and the cards on offer, and
maps keys to player actions.  It is a tick source and a debugging aid,
not the game's real interface.

Controls:
  Space       = click one batch of base ops
  1-4         = click ops for base / super / epic / awesome
  + / -       = raise / lower the base price by 10%
  B           = pay the electricity bill
  C / R       = upgrade CPU / RAM of the selected node
  Up/Down     = select node
  N / K / D   = buy node / rack / datacenter
  F1-F3 F6-F9 = use the n-th card on offer
  P           = pause / resume
  Esc         = save and quit
  F4          = hot-reload tuning
  F5          = save now
"""

from __future__ import annotations
import pygame

from core import tuning
from core.app import App
from core.constants import MB
from core.events import ActionRejected, BillArrived, PowersaveChanged
from core.save import save_world
from core.scene import Scene
from components.economy import Tier
from simulation.actions import (
    AddDatacenter, AddNode, AddRack, ChangePrice, OpClick, PayBill,
    UpgradeCpu, UpgradeRam, UseCard,
)
from simulation.cards import visible_cards

# ── UI constants ─────────────────────────────────────────────────────
_HEADER = (0, 255, 200)
_TEXT = (200, 200, 200)
_DIM = (90, 90, 90)
_WARN = (255, 120, 80)
_LINE_H = 16

_TIER_KEYS = {
    pygame.K_1: Tier.BASE,
    pygame.K_2: Tier.SUPER,
    pygame.K_3: Tier.EPIC,
    pygame.K_4: Tier.AWESOME,
}
_CARD_KEYS = [pygame.K_F1 + i for i in range(3)] + \
             [pygame.K_F6 + i for i in range(4)]


def _money(mc: int) -> str:
    return f"${mc / 100_000:,.2f}"


class DatacenterScene(Scene):
    def __init__(self, save_slot: int = 0):
        super().__init__()
        self.save_slot = save_slot
        self.selected_node = 0

    # ── Lifecycle ────────────────────────────────────────────────────

    def on_enter(self, app: App):
        self.listen(app, "SnapshotRequested", lambda e: self._save(app))
        self.listen(app, "BillArrived", self._on_bill)
        self.listen(app, "PowersaveChanged", self._on_powersave)
        self.listen(app, "ActionRejected", self._on_rejected)

    def on_exit(self, app: App):
        super().on_exit(app)
        self._save(app)

    def _save(self, app: App):
        save_world(app.engine.state, self.save_slot)

    def _on_bill(self, event: BillArrived):
        self.notify(f"Bill: {_money(event.amount)} (due {_money(event.total_due)})")

    def _on_powersave(self, event: PowersaveChanged):
        self.notify("Powersave ON: pay your bills!" if event.active
                  else "Powersave OFF")

    def _on_rejected(self, event: ActionRejected):
        self.notify(f"{event.action}: {event.reason}")

    # ── Input ────────────────────────────────────────────────────────

    def handle_event(self, event: pygame.event.Event, app: App):
        if event.type != pygame.KEYDOWN:
            return
        engine = app.engine
        state = engine.state
        key = event.key

        if key == pygame.K_SPACE:
            engine.apply_action(OpClick(Tier.BASE))
        elif key in _TIER_KEYS:
            engine.apply_action(OpClick(_TIER_KEYS[key]))
        elif key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            price = state.service(Tier.BASE).price
            engine.apply_action(ChangePrice(Tier.BASE, price + max(1, price // 10)))
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            price = state.service(Tier.BASE).price
            engine.apply_action(ChangePrice(Tier.BASE, max(0, price - max(1, price // 10))))
        elif key == pygame.K_b:
            engine.apply_action(PayBill())
        elif key == pygame.K_c:
            engine.apply_action(UpgradeCpu(state.nodes[self.selected_node].id))
        elif key == pygame.K_r:
            engine.apply_action(UpgradeRam(state.nodes[self.selected_node].id))
        elif key == pygame.K_UP:
            self.selected_node = max(0, self.selected_node - 1)
        elif key == pygame.K_DOWN:
            self.selected_node = min(len(state.nodes) - 1, self.selected_node + 1)
        elif key == pygame.K_n:
            engine.apply_action(AddNode())
        elif key == pygame.K_k:
            engine.apply_action(AddRack())
        elif key == pygame.K_d:
            engine.apply_action(AddDatacenter())
        elif key in _CARD_KEYS:
            offered = visible_cards(state, engine.catalog)
            index = _CARD_KEYS.index(key)
            if index < len(offered):
                engine.apply_action(UseCard(offered[index].id))
        elif key == pygame.K_ESCAPE:
            app.pop_scene()
        elif key == pygame.K_p:
            app.paused = not app.paused
        elif key == pygame.K_F4:
            tuning.reload()
        elif key == pygame.K_F5:
            self._save(app)
            self.notify(f"Saved to slot {self.save_slot}")

    # ── Frame ────────────────────────────────────────────────────────

    def update(self, dt: float, app: App):
        app.engine.bus.drain()
        self.selected_node = min(self.selected_node, len(app.engine.state.nodes) - 1)

    def draw(self, surface: pygame.Surface, app: App):
        engine = app.engine
        state = engine.state
        totals = engine.totals()
        x, y = 8, 8

        def line(text: str, color=_TEXT):
            nonlocal y
            app.draw_text(surface, text, x, y, color)
            y += _LINE_H

        status = "PAUSED" if app.paused else f"t={state.time / 10_000:.1f}s"
        line(f"CLOUD TYCOON  {status}", _HEADER)
        line(f"funds {_money(state.funds)}   earned {_money(state.earned)}   "
             f"spent {_money(state.spent)}")
        if state.demand_visible:
            line(f"demand {state.demand:.2f} req/s (+{state.demand_rate:.2f})")
        line(f"requests  received {totals['received']}  fulfilled "
             f"{totals['fulfilled']}  dropped {totals['dropped']}  "
             f"failed {totals['failed']}")
        bill_color = _WARN if totals["powersaving"] else _TEXT
        line(f"bill due {_money(totals['total_due'])}   paid "
             f"{_money(totals['total_paid'])}"
             + ("   POWERSAVE" if totals["powersaving"] else ""), bill_color)
        if state.energy_visible:
            line(f"energy {totals['consumption']:.0f} u   "
                 f"{totals['consumption_rate']:.1f} u/s")
        y += _LINE_H // 2

        for tier in Tier:
            view = engine.service_view(tier)
            if not view["unlocked"]:
                continue
            flag = "private" if view["private"] else "public"
            line(f"{view['tier']:<8} {flag:<8} price {view['price']:>6} mc  "
                 f"ops {view['available']}/{view['total']}")
        y += _LINE_H // 2

        line(f"nodes {len(state.nodes)}   cpu {totals['cpu_load']:.0%}   "
             f"mem {totals['memory_load']:.0%}   "
             f"routing queue {totals['routing_queue']}", _HEADER)
        for i, node in enumerate(state.nodes[:12]):
            marker = ">" if i == self.selected_node else " "
            line(f"{marker} #{node.id:<3} cpu L{node.cpu_level} "
                 f"({node.processing}/{node.num_cores})  ram L{node.ram_level} "
                 f"{node.memory_used / MB:.0f}/{node.ram_capacity / MB:.0f} MB  "
                 f"queue {len(node.waiting)}")
        if len(state.nodes) > 12:
            line(f"  ... {len(state.nodes) - 12} more", _DIM)
        y += _LINE_H // 2

        line("cards", _HEADER)
        keys = ["F1", "F2", "F3", "F6", "F7", "F8", "F9"]
        for key, card in zip(keys, visible_cards(state, engine.catalog)):
            affordable = state.can_afford(card.cost)
            price = "free" if card.cost.is_free else _money(card.cost.money)
            line(f"[{key}] {card.title} ({price}): {card.description}",
                 _TEXT if affordable else _DIM)
        y += _LINE_H // 2

        for message in self.messages:
            line(message, _WARN)
