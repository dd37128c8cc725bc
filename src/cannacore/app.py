"""Demo hosts for the simulation: a raylib window and a headless runner.

The window is deliberately plain: a harvest button, the building list and
status lines. Keys: SPACE harvest, 1-9 buy building, A/B abilities,
E claim event, P prestige, S save.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cannacore.amounts import format_amount
from cannacore.shop import sorted_shop_entries
from cannacore.simulation import Simulation, create_simulation

logger = logging.getLogger(__name__)


@dataclass
class HostLayout:
    window_width: int = 960
    window_height: int = 640
    button_x: int = 40
    button_y: int = 140
    button_size: int = 220
    shop_x: int = 320
    shop_y: int = 60
    row_height: int = 34


def default_save_path() -> Path:
    return Path.home() / ".cannacore" / "save.json"


def run_headless(save_path: Optional[Path] = None, max_steps: Optional[int] = None,
                 tick_rate: float = 10.0) -> int:
    """Advance the simulation on wall-clock time without a window."""
    sim = create_simulation(save_path)
    step = 1.0 / tick_rate if tick_rate > 0 else 0.1
    steps = 0
    try:
        while max_steps is None or steps < max_steps:
            sim.tick(step, sim.now + int(step * 1000))
            for note in sim.drain_notifications():
                logger.info("Notification: %s", note)
            steps += 1
            if max_steps is None:
                time.sleep(step)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        sim.shutdown()
    logger.info(
        "Stopped after %d steps: %s buds, %s/s",
        steps, format_amount(sim.currency), format_amount(sim.production_rate),
    )
    return 0


def _handle_input(sim: Simulation, layout: HostLayout) -> None:
    from cannacore import raylib_compat as rl

    if rl.is_key_pressed(rl.KEY_SPACE):
        sim.manual_action()
    if rl.is_mouse_button_pressed(rl.MOUSE_BUTTON_LEFT):
        x, y = rl.get_mouse_position()
        if (layout.button_x <= x <= layout.button_x + layout.button_size
                and layout.button_y <= y <= layout.button_y + layout.button_size):
            sim.manual_action()

    entries = [e for e in sorted_shop_entries(sim.state) if e.unlocked]
    for index, entry in enumerate(entries[:9]):
        if rl.is_key_pressed(rl.KEY_ONE + index):
            sim.purchase(entry.item.id)

    abilities = sim.registry.ability_ids
    if abilities and rl.is_key_pressed(rl.KEY_A):
        sim.activate_ability(abilities[0])
    if len(abilities) > 1 and rl.is_key_pressed(rl.KEY_B):
        sim.activate_ability(abilities[1])
    if rl.is_key_pressed(rl.KEY_E):
        active = sim.state.temp.active_event
        if active is not None:
            sim.trigger_event_click(active.token)
    if rl.is_key_pressed(rl.KEY_P):
        sim.perform_prestige()
    if rl.is_key_pressed(rl.KEY_S):
        sim.save()


def _draw(sim: Simulation, layout: HostLayout, toast: str) -> None:
    from cannacore import raylib_compat as rl

    white = rl.color(235, 240, 230)
    dim = rl.color(140, 150, 140)
    green = rl.color(70, 160, 80)

    rl.begin_drawing()
    rl.clear_background(rl.color(18, 24, 20))
    rl.draw_text(f"Buds: {format_amount(sim.currency)}", 40, 20, 28, white)
    rl.draw_text(
        f"{format_amount(sim.production_rate)}/s  |  {format_amount(sim.click_yield)} per click",
        40, 56, 18, dim,
    )
    preview = sim.prestige_preview()
    rl.draw_text(
        f"Seeds: {preview.current_seeds} (x{preview.current_multiplier})  next +{preview.gain}",
        40, 82, 18, dim,
    )

    rl.draw_rectangle(layout.button_x, layout.button_y, layout.button_size, layout.button_size, green)
    rl.draw_text("HARVEST", layout.button_x + 50, layout.button_y + 95, 28, white)

    y = layout.shop_y
    entries = [e for e in sorted_shop_entries(sim.state) if e.unlocked]
    for index, entry in enumerate(entries[:9]):
        c = white if entry.affordable else dim
        rl.draw_text(
            f"[{index + 1}] {entry.item.name} x{entry.owned}  {format_amount(entry.cost)}",
            layout.shop_x, y, 18, c,
        )
        y += layout.row_height

    y = layout.window_height - 120
    for snap in sim.ability_snapshots():
        state = "active" if snap.active else ("ready" if snap.ready else f"{snap.ready_in_sec:.0f}s")
        rl.draw_text(f"{snap.id}: {state}", 40, y, 18, dim)
        y += 24

    event = sim.event_snapshot()
    if event.active is not None:
        ex = int(event.active.x * layout.window_width)
        ey = int(event.active.y * layout.window_height)
        rl.draw_circle(ex, ey, 18, rl.color(230, 200, 60))
        rl.draw_text(f"[E] {event.active.id}", ex + 24, ey - 8, 16, white)
    if toast:
        rl.draw_text(toast, layout.shop_x, layout.window_height - 40, 18, white)
    rl.end_drawing()


def _describe(note) -> str:
    if note.kind == "offline_gains":
        return f"While you were away: +{format_amount(note.amount)} buds"
    if note.kind == "synergy_claimed":
        return f"Synergy {note.source}: +{note.seeds} seeds"
    return f"+{note.seeds} seed ({note.source})"


async def run_window(save_path: Optional[Path] = None, max_steps: Optional[int] = None) -> int:
    from cannacore import raylib_compat as rl

    layout = HostLayout()
    rl.init_window(layout.window_width, layout.window_height, "CannaCore")
    rl.set_exit_key(0)
    rl.set_target_fps(60)

    sim = create_simulation(save_path)
    toast = ""
    steps = 0
    try:
        while not rl.window_should_close():
            if max_steps is not None and steps >= max_steps:
                break
            dt = rl.get_frame_time()
            sim.tick(dt, sim.now + int(dt * 1000))
            _handle_input(sim, layout)
            for note in sim.drain_notifications():
                toast = _describe(note)
            _draw(sim, layout, toast)
            steps += 1
            await asyncio.sleep(0)
    finally:
        sim.shutdown()
        rl.close_window()
    return 0
