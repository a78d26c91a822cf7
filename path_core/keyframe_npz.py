from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from .keyframes import KeyframeTrack

CHANNELS = ("times", "x", "y", "rotate", "opacity")


def save_keyframes_npz(track: KeyframeTrack, path: str | Path) -> Path:
    """
    Write the track as parallel float64 arrays: times, x, y, rotate, opacity.
    """
    p = Path(path)
    np.savez(
        p,
        times=np.asarray(track.times, dtype=np.float64),
        x=np.asarray(track.x, dtype=np.float64),
        y=np.asarray(track.y, dtype=np.float64),
        rotate=np.asarray(track.rotate, dtype=np.float64),
        opacity=np.asarray(track.opacity, dtype=np.float64),
    )
    # np.savez appends .npz when the suffix is missing
    return p if p.suffix == ".npz" else p.with_name(p.name + ".npz")


def load_keyframes_npz(path: str | Path) -> Tuple[Optional[KeyframeTrack], str]:
    """
    Returns (track, error_message). If ok, error_message == "ok".
    Checks:
      - all five channels exist
      - lengths match and are >= 2
      - values are finite
      - times is non-decreasing inside [0, 1]
      - opacity in 0..1
    """
    p = Path(path)

    if not p.exists():
        return None, f"Keyframe file not found: {p}"

    try:
        with np.load(p, allow_pickle=False) as z:
            missing = [k for k in CHANNELS if k not in z]
            if missing:
                return None, f"NPZ must contain arrays: {', '.join(CHANNELS)} (missing {', '.join(missing)})"
            arrays = {k: np.asarray(z[k], dtype=np.float64).reshape(-1) for k in CHANNELS}
    except Exception as e:
        return None, f"Failed to read NPZ: {e}"

    n = int(arrays["times"].shape[0])
    if any(int(a.shape[0]) != n for a in arrays.values()):
        return None, "times, x, y, rotate, opacity must have the same length"
    if n < 2:
        return None, "track must have at least 2 frames"

    if not all(bool(np.all(np.isfinite(a))) for a in arrays.values()):
        return None, "track values must be finite"

    times = arrays["times"]
    if np.any(np.diff(times) < 0):
        return None, "times must be sorted non-decreasing"
    if times[0] < 0.0 or times[-1] > 1.0:
        return None, "times must lie in 0..1"

    opacity = arrays["opacity"]
    if np.any(opacity < 0.0) or np.any(opacity > 1.0):
        return None, "opacity must be in 0..1"

    track = KeyframeTrack(
        x=arrays["x"].tolist(),
        y=arrays["y"].tolist(),
        rotate=arrays["rotate"].tolist(),
        opacity=opacity.tolist(),
        times=times.tolist(),
    )
    return track, "ok"
