from __future__ import annotations

import argparse
import copy
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

import cv2
import numpy as np

from controls import ControlPanel
from fluid_sim import FluidSolver
from frame_timer import FixedStepper, FrameTimer
from pointer import PointerController, PointerState, apply_pointer
from presets import DEFAULT_PRESET, Preset, load_preset, next_render_mode, save_preset, validate_simulation
from render import DyeRenderer

log = logging.getLogger(__name__)

WINDOW_TITLE = "Aurora Fluid"
TARGET_DT = 1.0 / 60.0
MIN_RESOLUTION = 16
MAX_RESOLUTION = 512
HELP_LINES = [
    "drag: paint dye",
    "r reset  c clear dye  v clear velocity",
    "[ ] resolution  m render mode",
    "s save preset  q quit",
]


def draw_text_block(canvas: np.ndarray, origin: tuple[int, int], lines: list[str], scale: float = 0.5) -> None:
    x, y = origin
    for line in lines:
        cv2.putText(canvas, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, scale, (255, 255, 255), 1, cv2.LINE_AA)
        y += int(30 * scale)


def format_stats_lines(preset: Preset, stats: dict[str, float], fps: float) -> list[str]:
    sim = preset.simulation
    return [
        f"resolution  {sim.resolution}",
        f"viscosity   {sim.viscosity:.6f}",
        f"diffusion   {sim.diffusion:.6f}",
        f"dissipation {sim.dissipation:.3f}",
        f"curl        {sim.curl_strength:.1f}",
        f"dye         {stats['total_dye']:.2f}",
        f"fps         {fps:4.1f}",
    ]


def change_resolution(sim: FluidSolver, preset: Preset, factor: float) -> None:
    resolution = int(np.clip(preset.simulation.resolution * factor, MIN_RESOLUTION, MAX_RESOLUTION))
    if resolution == preset.simulation.resolution:
        return
    preset.simulation = replace(preset.simulation, resolution=resolution)
    sim.update_config(preset.simulation)
    log.info("Resolution set to %d", resolution)


def cycle_render_mode(preset: Preset, renderer: DyeRenderer | None) -> None:
    preset.rendering = replace(preset.rendering, mode=next_render_mode(preset.rendering.mode))
    if renderer is not None:
        renderer.update_config(preset.rendering)
    log.info("Render mode: %s", preset.rendering.mode)


def handle_key(
    key: int,
    sim: FluidSolver,
    preset: Preset,
    save_path: Path | None,
    renderer: DyeRenderer | None = None,
    stepper: FixedStepper | None = None,
) -> bool:
    """Apply a keyboard command; returns False when the app should quit."""
    if key in (27, ord("q")):
        return False
    if key == ord("r"):
        sim.reset()
        if stepper is not None:
            stepper.reset()
    elif key == ord("c"):
        sim.clear_dye()
    elif key == ord("v"):
        sim.clear_velocity()
    elif key in (ord("["), ord("]")):
        change_resolution(sim, preset, 0.5 if key == ord("[") else 2.0)
        if stepper is not None:
            stepper.reset()
    elif key == ord("m"):
        cycle_render_mode(preset, renderer)
    elif key == ord("s"):
        if save_path is None:
            log.warning("No --save-preset path given; not saving")
        else:
            save_preset(preset, save_path)
    return True


def scripted_pointer(frame: int) -> PointerState:
    """Pointer circling the centre, used when running without a window."""
    angle = frame * 0.05
    x = 0.5 + 0.25 * np.cos(angle)
    y = 0.5 + 0.25 * np.sin(angle)
    return PointerState(x, y, -300.0 * np.sin(angle), 300.0 * np.cos(angle), True)


def run_headless(preset: Preset, frames: int) -> dict[str, float]:
    sim = FluidSolver(preset.simulation)
    stats = sim.stats()
    for frame in range(frames):
        apply_pointer(sim, scripted_pointer(frame), preset.emitter)
        sim.step(TARGET_DT)
        if frame % 30 == 0 or frame == frames - 1:
            stats = sim.stats()
            log.info(
                "frame %4d | dye=%.3f max_speed=%.4f max_div=%.5f",
                frame,
                stats["total_dye"],
                stats["max_speed"],
                stats["max_divergence"],
            )
    return stats


def run(preset: Preset, input_mode: str, camera_index: int, size: int, save_path: Path | None) -> None:
    sim = FluidSolver(preset.simulation)
    sim.warmup(2)
    renderer = DyeRenderer(preset.rendering, size=size)
    timer = FrameTimer()
    stepper = FixedStepper(TARGET_DT)

    cv2.namedWindow(WINDOW_TITLE)
    pointer = PointerController(size, size)
    pointer.attach(WINDOW_TITLE)
    ControlPanel(sim, renderer, preset).attach()

    tracker = None
    cap = None
    if input_mode == "hand":
        from hand_tracking import HandTracker

        tracker = HandTracker()
        cap = cv2.VideoCapture(camera_index)
        if not cap.isOpened():
            raise RuntimeError("Unable to access webcam")

    fps_smooth = 0.0
    try:
        while True:
            now = time.perf_counter()
            dt = timer.delta(now)

            if tracker is not None:
                ret, frame = cap.read()
                if not ret:
                    break
                hand = tracker.detect(cv2.flip(frame, 1))
                state = hand.to_pointer(frame.shape[1], frame.shape[0]) if hand else None
            else:
                state = pointer.state()
            apply_pointer(sim, state, preset.emitter)

            for _ in range(stepper.advance(dt)):
                sim.step(TARGET_DT)

            image = renderer.render(sim.dye_field())
            if dt > 0:
                fps_smooth = 1.0 / dt if fps_smooth == 0.0 else fps_smooth * 0.9 + 0.1 / dt
            draw_text_block(image, (12, 22), format_stats_lines(preset, sim.stats(), fps_smooth))
            draw_text_block(image, (12, size - 60), HELP_LINES, scale=0.45)
            cv2.imshow(WINDOW_TITLE, image)

            key = cv2.waitKey(1) & 0xFF
            if key != 0xFF and not handle_key(key, sim, preset, save_path, renderer, stepper):
                break
    finally:
        if cap is not None:
            cap.release()
        if tracker is not None:
            tracker.close()
        cv2.destroyAllWindows()


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive stable fluid dye demo")
    parser.add_argument("--preset", type=Path, help="JSON preset to load (default: built-in)")
    parser.add_argument("--save-preset", type=Path, help="Where 's' writes the current preset")
    parser.add_argument("--resolution", type=int, help="Override the preset grid resolution")
    parser.add_argument("--input", choices=["mouse", "hand"], default="mouse", help="Pointer source")
    parser.add_argument("--camera", type=int, default=0, help="Webcam index for --input hand (default: 0)")
    parser.add_argument("--size", type=int, default=640, help="Window size in pixels (default: 640)")
    parser.add_argument("--headless-frames", type=int, default=0, help="Run N frames without a window and exit")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser.parse_args(argv)


def build_preset(args: argparse.Namespace) -> Preset:
    preset = load_preset(args.preset) if args.preset else copy.deepcopy(DEFAULT_PRESET)
    if args.resolution is not None:
        preset.simulation = replace(preset.simulation, resolution=args.resolution)
        validate_simulation(preset.simulation)
    return preset


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(name)s - %(message)s")
    preset = build_preset(args)
    log.info("Using preset '%s' at resolution %d", preset.name, preset.simulation.resolution)

    if args.headless_frames > 0:
        run_headless(preset, args.headless_frames)
    else:
        run(preset, args.input, args.camera, args.size, args.save_preset)


if __name__ == "__main__":
    main()
