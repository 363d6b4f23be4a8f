"""
main.py — Bootstrap

1. Load tuning constants and the card catalog
2. Restore the last save, or start a fresh world
3. Build the engine and arm every cohort's arrivals
4. Push the data center scene
5. Run
"""

from core import tuning
from core.app import App
from core.data import default_catalog
from core.save import load_world
from components.world import WorldState
from scenes.datacenter_scene import DatacenterScene
from simulation.engine import GameEngine

SAVE_SLOT = 0


def main():
    tuning.load()
    catalog = default_catalog()

    result = load_world(SAVE_SLOT)
    if result.ok:
        state = result.state
    else:
        if result.error:
            print(f"[MAIN] Save slot {SAVE_SLOT} unreadable, starting fresh")
        state = WorldState()

    engine = GameEngine(state, catalog=catalog)
    engine.bootstrap_events()

    app = App(engine, title="Cloud Tycoon", width=960, height=640)
    app.push_scene(DatacenterScene(save_slot=SAVE_SLOT))
    app.run()


if __name__ == "__main__":
    main()
