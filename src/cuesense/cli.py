"""cuesense CLI.

Usage:
    cuesense config      - Print the effective configuration as YAML
    cuesense simulate    - Run a synthetic bass pattern through the spectral engine
    cuesense benchmark   - Time audio and camera ticks on synthetic data
    cuesense watch       - Run live gesture recognition from a camera
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="cuesense",
    help="Audio and gesture signal interpretation for live visuals.",
    add_completion=False,
)


def _load_config(path: Optional[str]):
    from cuesense.config import EngineConfig

    if path is None:
        return EngineConfig()
    if not Path(path).exists():
        typer.echo(f"Config file not found: {path}", err=True)
        raise typer.Exit(1)
    return EngineConfig.from_yaml(path)


@app.callback()
def main_options(
    log_level: str = typer.Option("warning", help="Log level"),
):
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@app.command()
def config(
    file: Optional[str] = typer.Option(None, "--file", "-f", help="YAML config to load"),
    output: Optional[str] = typer.Option(None, "-o", help="Write the result to this path"),
):
    """Print the effective configuration, defaults filled in."""
    cfg = _load_config(file)
    text = cfg.to_yaml(output)
    typer.echo(text, nl=False)
    if output:
        typer.echo(f"Saved to: {output}", err=True)


@app.command()
def simulate(
    pattern: str = typer.Option(
        "0.2,0.2,0.2,0.2,0.2,0.9,0.2,0.2,0.2,0.2",
        help="Comma-separated bass levels in [0, 1], one per tick",
    ),
    interval: float = typer.Option(0.2, help="Seconds between ticks"),
    repeat: int = typer.Option(1, help="Repeat the pattern this many times"),
    bins: int = typer.Option(1024, help="Spectrum size"),
    sample_rate: float = typer.Option(44100.0, help="Sample rate in Hz"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="YAML config to load"),
):
    """Feed a synthetic bass pattern through the spectral engine."""
    import numpy as np
    from cuesense.context import EngineContext

    try:
        levels = [float(v) for v in pattern.split(",") if v.strip()]
    except ValueError:
        typer.echo(f"Invalid pattern: {pattern}", err=True)
        raise typer.Exit(1)

    ctx = EngineContext(config=_load_config(file))
    max_mag = ctx.config.spectral.max_magnitude

    beats: list[int] = []
    peaks: list[int] = []
    tick = 0
    ctx.registry.subscribe("beat", lambda intensity: beats.append(tick))
    ctx.registry.subscribe("peak", lambda intensity: peaks.append(tick))

    for level in levels * max(1, repeat):
        tick += 1
        spectrum = np.full(bins, level * max_mag)
        ctx.spectral.update(spectrum, sample_rate, timestamp=tick * interval)
        s = ctx.spectral.smoothed
        marker = "BEAT" if beats and beats[-1] == tick else ""
        typer.echo(
            f"tick {tick:3d}  bass={ctx.spectral.raw.bass:.3f}  "
            f"smoothed={s.bass:.3f}  overall={s.overall:.3f}  {marker}"
        )

    typer.echo(f"\nBeats on ticks: {beats or 'none'}")
    typer.echo(f"Peaks on ticks: {peaks or 'none'}")


@app.command()
def benchmark(
    iterations: int = typer.Option(1000, help="Number of iterations"),
    bins: int = typer.Option(1024, help="Spectrum size"),
):
    """Time audio and camera ticks on synthetic data."""
    import numpy as np
    from cuesense.context import EngineContext
    from cuesense.landmarks import LandmarkFrame

    typer.echo(f"Running benchmark: {iterations} iterations")

    ctx = EngineContext()
    ctx.gestures.enable()
    rng = np.random.default_rng(42)
    spectra = rng.integers(0, 256, size=(16, bins))
    hands = rng.random((16, 21, 3))
    poses = rng.random((16, 33, 3))

    times = []
    for i in range(iterations):
        t0 = time.perf_counter()
        ctx.spectral.update(spectra[i % 16], 44100.0, timestamp=i / 60.0)
        ctx.gestures.process(LandmarkFrame(
            hands=[hands[i % 16]], pose=poses[i % 16], timestamp=i / 60.0,
        ))
        times.append(time.perf_counter() - t0)

    avg_ms = sum(times) / len(times) * 1000
    p95_ms = sorted(times)[int(len(times) * 0.95)] * 1000

    typer.echo("\nResults:")
    typer.echo(f"   Average latency: {avg_ms:.3f} ms")
    typer.echo(f"   P95 latency:     {p95_ms:.3f} ms")

    typer.echo("\nStage breakdown:")
    for name, stats in ctx.profiler.summary().items():
        typer.echo(f"   {name:20s} avg={stats['avg_ms']:.3f}ms  p95={stats['p95_ms']:.3f}ms")
    ctx.close()


def _run_capture(cap, on_frame, duration: float, clock=time.monotonic) -> int:
    """Read frames until `duration` seconds pass (0 runs until interrupted).

    Failed reads still count against the duration. Returns the number of
    frames passed to `on_frame`.
    """
    start = clock()
    frames = 0
    while duration <= 0 or clock() - start < duration:
        ret, frame = cap.read()
        if not ret:
            time.sleep(0.01)
            continue
        on_frame(frame)
        frames += 1
    return frames


@app.command()
def watch(
    camera: int = typer.Option(0, help="Camera device index"),
    duration: float = typer.Option(0, help="Seconds to run (0 = until Ctrl+C)"),
    file: Optional[str] = typer.Option(None, "--file", "-f", help="YAML config to load"),
    metrics: bool = typer.Option(False, help="Print Prometheus metrics on exit"),
):
    """Run live gesture recognition from a camera and print events."""
    import cv2
    from cuesense.context import EngineContext
    from cuesense.detector import LandmarkDetector

    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        typer.echo(f"Could not open camera {camera}", err=True)
        raise typer.Exit(1)

    ctx = EngineContext(config=_load_config(file), detector_factory=LandmarkDetector)
    reg = ctx.registry
    reg.on_pinch(lambda s: typer.echo(f"   pinch {s:.2f}"))
    reg.on_swipe(lambda d, v: typer.echo(f"   swipe {d} ({v:.3f})"))
    reg.on_reset(lambda: typer.echo("   reset"))
    reg.on_follow(lambda x, y, active: typer.echo(
        f"   follow ({x:+.2f}, {y:+.2f})" if active else "   follow released"
    ))
    reg.on_body_lean(lambda lean: typer.echo(f"   lean {lean:+.2f}"))

    typer.echo(f"Watching camera {camera}. Press Ctrl+C to stop")
    ctx.gestures.enable()
    try:
        _run_capture(
            cap,
            lambda frame: ctx.gestures.process_image(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)),
            duration,
        )
    except KeyboardInterrupt:
        pass
    finally:
        cap.release()
        ctx.close()

    stats = ctx.gestures.stats
    typer.echo(f"\nProcessed {stats.total_frames} frames, {stats.total_updates} updates")
    if metrics:
        typer.echo(ctx.render_metrics())


def main():
    app()


if __name__ == "__main__":
    main()
