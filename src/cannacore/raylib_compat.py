"""Thin snake_case layer over the raylib C bindings.

Re-exports just what the demo host draws with, and encodes text arguments
to UTF-8 bytes because the CFFI bindings expect ``const char*``.
"""
from __future__ import annotations

import raylib as rl

KEY_ONE = rl.KEY_ONE
KEY_A = rl.KEY_A
KEY_B = rl.KEY_B
KEY_E = rl.KEY_E
KEY_P = rl.KEY_P
KEY_S = rl.KEY_S
KEY_SPACE = rl.KEY_SPACE
MOUSE_BUTTON_LEFT = rl.MOUSE_BUTTON_LEFT


def _encode_text(value):
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def color(r: int, g: int, b: int, a: int = 255):
    return (r, g, b, a)


def init_window(width: int, height: int, title: str) -> None:
    rl.InitWindow(width, height, _encode_text(title))


def set_target_fps(fps: int) -> None:
    rl.SetTargetFPS(fps)


def set_exit_key(key: int) -> None:
    rl.SetExitKey(key)


def window_should_close() -> bool:
    return bool(rl.WindowShouldClose())


def close_window() -> None:
    rl.CloseWindow()


def begin_drawing() -> None:
    rl.BeginDrawing()


def end_drawing() -> None:
    rl.EndDrawing()


def clear_background(c) -> None:
    rl.ClearBackground(c)


def get_frame_time() -> float:
    return float(rl.GetFrameTime())


def is_key_pressed(key: int) -> bool:
    return bool(rl.IsKeyPressed(key))


def is_mouse_button_pressed(button: int) -> bool:
    return bool(rl.IsMouseButtonPressed(button))


def get_mouse_position():
    pos = rl.GetMousePosition()
    return pos.x, pos.y


def draw_text(text: str, x: int, y: int, size: int, c) -> None:
    rl.DrawText(_encode_text(text), int(x), int(y), int(size), c)


def draw_rectangle(x: int, y: int, w: int, h: int, c) -> None:
    rl.DrawRectangle(int(x), int(y), int(w), int(h), c)


def draw_circle(x: int, y: int, radius: float, c) -> None:
    rl.DrawCircle(int(x), int(y), float(radius), c)
