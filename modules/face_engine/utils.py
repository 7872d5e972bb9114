"""Helper functions for the face engine."""

from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np

from .errors import ImageDecodeError

_DECODE_FLAGS = cv2.IMREAD_COLOR | cv2.IMREAD_ANYDEPTH | cv2.IMREAD_IGNORE_ORIENTATION
_ONE = np.float32(1.0)
_HALF = np.float32(0.5)


def _to_uint8(arr: np.ndarray) -> np.ndarray:
    if arr.dtype == np.uint8:
        return arr
    if arr.dtype == np.uint16:
        # Nearest 8-bit level, not a plain shift.
        return ((arr.astype(np.uint32) + 128) // 257).astype(np.uint8)
    if np.issubdtype(arr.dtype, np.floating):
        return _round_half_up(np.clip(arr.astype(np.float32) * 255.0, 0.0, 255.0))
    raise ImageDecodeError(f"unsupported sample type {arr.dtype}")


# decode_image routine
def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image ``data`` into an ``(H, W, 3)`` RGB uint8 array.

    EXIF orientation is ignored; pixels are taken in stored order. Alpha is
    dropped and 16-bit samples are rounded to the nearest 8-bit level.
    """
    if not data:
        raise ImageDecodeError("no image data supplied")
    buf = np.frombuffer(data, np.uint8)
    try:
        arr = cv2.imdecode(buf, _DECODE_FLAGS)
    except cv2.error as exc:
        raise ImageDecodeError(f"invalid image: {exc}") from exc
    if arr is None:
        raise ImageDecodeError("unsupported or corrupt image encoding")
    return cv2.cvtColor(_to_uint8(arr), cv2.COLOR_BGR2RGB)


def _round_half_up(x: np.ndarray) -> np.ndarray:
    low = np.floor(x)
    return np.where(x - low >= _HALF, low + _ONE, low).astype(np.uint8)


def _triangle_weights(src: int, dst: int) -> tuple[np.ndarray, np.ndarray]:
    """Return the first source index and float32 tap weights per output sample.

    Taps follow a triangle kernel whose support widens by the reduction ratio.
    Arithmetic stays in float32 and sums taps in order so results match the
    reference resampler exactly.
    """
    ratio = np.float32(src) / np.float32(dst)
    sratio = max(ratio, _ONE)
    lefts = []
    rows = []
    for out in range(dst):
        center = (np.float32(out) + _HALF) * ratio
        left = min(max(int(np.floor(center - sratio)), 0), src - 1)
        right = min(max(int(np.ceil(center + sratio)), left + 1), src)
        center = center - _HALF
        taps = []
        total = np.float32(0.0)
        for i in range(left, right):
            x = abs((np.float32(i) - center) / sratio)
            w = _ONE - x if x < _ONE else np.float32(0.0)
            taps.append(w)
            total = total + w
        lefts.append(left)
        rows.append([w / total for w in taps])
    weights = np.zeros((dst, max(len(r) for r in rows)), dtype=np.float32)
    for out, row in enumerate(rows):
        weights[out, : len(row)] = row
    return np.asarray(lefts, dtype=np.intp), weights


def _resample_axis(data: np.ndarray, dst: int, axis: int) -> np.ndarray:
    src = data.shape[axis]
    lefts, weights = _triangle_weights(src, dst)
    moved = np.moveaxis(data, axis, 0)
    out = np.zeros((dst,) + moved.shape[1:], dtype=np.float32)
    extra = (1,) * (moved.ndim - 1)
    for k in range(weights.shape[1]):
        idx = np.minimum(lefts + k, src - 1)
        out += moved[idx] * weights[:, k].reshape((dst,) + extra)
    return np.moveaxis(out, 0, axis)


# resize routine
def resize(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Resample ``image`` to exactly ``width`` x ``height`` with a triangle filter.

    The vertical pass runs first, both passes stay in float32 and samples are
    rounded once at the end. This is the resampling the networks were trained
    with; ``cv2.INTER_LINEAR`` does not widen its kernel when downscaling, and
    Pillow rounds between passes.
    """
    data = np.asarray(image, dtype=np.float32)
    data = _resample_axis(data, height, axis=0)
    data = _resample_axis(data, width, axis=1)
    return _round_half_up(np.clip(data, 0.0, 255.0))


# to_tensor routine
def to_tensor(
    image: np.ndarray,
    mean: Sequence[float] | None = None,
    std: Sequence[float] | None = None,
) -> np.ndarray:
    """Convert an RGB uint8 image into a ``(1, 3, H, W)`` float32 tensor.

    Samples are scaled to ``[0, 1]``, then shifted by ``mean`` and divided by
    ``std`` per channel when given.
    """
    x = image.astype(np.float32) / np.float32(255.0)
    if mean is not None:
        x = x - np.asarray(mean, dtype=np.float32)
    if std is not None:
        x = x / np.asarray(std, dtype=np.float32)
    return np.ascontiguousarray(x.transpose(2, 0, 1)[np.newaxis])
