"""
Pixel statistics over small RGBA buffers.

Every function takes a `numpy.ndarray` of shape (H, W, 4), dtype uint8, and
returns a scalar. All of them are pure and cheap on the 64×64 buffers the
cascade analyzes.

Functions:
  - count_unique_colors:     15-bit quantized colour count
  - channel_entropy:         mean Shannon entropy of R/G/B over 32 bins (bits)
  - edge_complexity:         mean first-order luminance gradient magnitude
  - block_variance:          mean luminance variance of 4×4 blocks
  - saturation_variance:     variance of HSV saturation
  - gradient_mean:           mean adjacent-pixel luminance delta in [0, 1]
  - gradient_smoothness:     1 − 16 × gradient_mean
  - noise_floor:             minimum luminance variance over 8×8 blocks
  - high_frequency_ratio:    share of 8×8 DCT AC energy at high frequencies
  - laplacian_sparsity:      share of pixels with a near-zero Laplacian
  - channel_uniformity:      similarity of the R/G/B variances
  - visual_ai_score:         saturation / channel / luminance blend for generators
  - extract_features:        all of the above as a FeatureVector
"""

import math
from dataclasses import dataclass

import numpy as np

ENTROPY_BINS = 32
MAX_ENTROPY_BITS = math.log2(ENTROPY_BINS)

_LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


def _rgb(pixels: np.ndarray) -> np.ndarray:
    return pixels[..., :3].astype(np.float64)


def _mean_luminance_255(pixels: np.ndarray) -> np.ndarray:
    """Unweighted (r + g + b) / 3 luminance on the 0–255 scale."""
    return _rgb(pixels).mean(axis=-1)


def _saturation(pixels: np.ndarray) -> np.ndarray:
    rgb = _rgb(pixels) / 255.0
    mx = rgb.max(axis=-1)
    mn = rgb.min(axis=-1)
    return np.where(mx == 0, 0.0, (mx - mn) / np.where(mx == 0, 1.0, mx))


def count_unique_colors(pixels: np.ndarray) -> int:
    q = pixels[..., :3].astype(np.uint32) >> 3
    packed = (q[..., 0] << 10) | (q[..., 1] << 5) | q[..., 2]
    return int(np.unique(packed).size)


def channel_entropy(pixels: np.ndarray) -> float:
    n = pixels.shape[0] * pixels.shape[1]
    if n == 0:
        return 0.0
    total = 0.0
    for c in range(3):
        hist = np.bincount((pixels[..., c] >> 3).ravel(), minlength=ENTROPY_BINS)
        p = hist[hist > 0] / n
        total += float(-(p * np.log2(p)).sum())
    return total / 3


def edge_complexity(pixels: np.ndarray) -> float:
    lum = _mean_luminance_255(pixels)
    if lum.shape[0] < 2 or lum.shape[1] < 2:
        return 0.0
    base = lum[:-1, :-1]
    gx = lum[:-1, 1:] - base
    gy = lum[1:, :-1] - base
    return float(np.sqrt(gx * gx + gy * gy).mean())


def block_variance(pixels: np.ndarray, block: int = 4) -> float:
    """Mean population variance of luminance in `block`×`block` tiles (edge tiles partial)."""
    lum = _mean_luminance_255(pixels)
    h, w = lum.shape
    variances = [
        lum[y:y + block, x:x + block].var()
        for y in range(0, h, block)
        for x in range(0, w, block)
    ]
    return float(np.mean(variances)) if variances else 0.0


def saturation_variance(pixels: np.ndarray) -> float:
    sat = _saturation(pixels)
    return float(sat.var()) if sat.size else 0.0


def gradient_mean(pixels: np.ndarray) -> float:
    """
    Mean per-pixel luminance change in [0, 1], averaged over the right and
    down neighbours. Large buffers are stride-sampled to about 128×128 points.
    """
    lum = _rgb(pixels) @ _LUMA_WEIGHTS
    h, w = lum.shape
    stride = max(1, math.ceil(max(w, h) / 128))
    if h <= stride or w <= stride:
        return 0.0
    base = lum[0:h - stride:stride, 0:w - stride:stride]
    rows, cols = base.shape
    right = lum[0:h - stride:stride, stride:w:stride][:rows, :cols]
    down = lum[stride:h:stride, 0:w - stride:stride][:rows, :cols]
    per_pixel = (np.abs(right - base) + np.abs(down - base)) / (2 * stride * 255)
    return float(per_pixel.mean())


def gradient_smoothness(pixels: np.ndarray) -> float:
    """1 when neighbouring pixels barely change, 0 once the mean delta reaches 1/16."""
    return max(0.0, min(1.0, 1.0 - gradient_mean(pixels) * 16))


def noise_floor(pixels: np.ndarray, block: int = 8) -> float:
    """Smallest luminance variance over full `block`×`block` tiles."""
    lum = _mean_luminance_255(pixels)
    h, w = lum.shape
    variances = [
        lum[y:y + block, x:x + block].var()
        for y in range(0, h - block + 1, block)
        for x in range(0, w - block + 1, block)
    ]
    return float(min(variances)) if variances else 0.0


def _dct_matrix(n: int = 8) -> np.ndarray:
    k = np.arange(n)
    m = np.cos(np.pi * (2 * k[None, :] + 1) * k[:, None] / (2 * n))
    m *= np.sqrt(2.0 / n)
    m[0, :] = np.sqrt(1.0 / n)
    return m


_DCT8 = _dct_matrix(8)
_HIGH_FREQ_MASK = np.add.outer(np.arange(8), np.arange(8)) >= 4


def high_frequency_ratio(pixels: np.ndarray) -> float:
    """AC energy with u + v ≥ 4 over total AC energy, across full 8×8 blocks."""
    lum = _mean_luminance_255(pixels)
    h, w = lum.shape
    high = 0.0
    total = 0.0
    for y in range(0, h - 7, 8):
        for x in range(0, w - 7, 8):
            coeffs = _DCT8 @ lum[y:y + 8, x:x + 8] @ _DCT8.T
            energy = coeffs * coeffs
            energy[0, 0] = 0.0
            total += float(energy.sum())
            high += float(energy[_HIGH_FREQ_MASK].sum())
    return high / total if total > 0 else 0.0


def laplacian_sparsity(pixels: np.ndarray, tolerance: float = 2.0) -> float:
    lum = _mean_luminance_255(pixels)
    if lum.shape[0] < 3 or lum.shape[1] < 3:
        return 1.0
    c = lum[1:-1, 1:-1]
    lap = 4 * c - lum[:-2, 1:-1] - lum[2:, 1:-1] - lum[1:-1, :-2] - lum[1:-1, 2:]
    return float((np.abs(lap) < tolerance).mean())


def channel_uniformity(pixels: np.ndarray) -> float:
    rgb = _rgb(pixels).reshape(-1, 3)
    if rgb.size == 0:
        return 1.0
    variances = rgb.var(axis=0)
    m = variances.mean()
    if m <= 0:
        return 1.0
    spread = np.abs(variances - m).sum() / (3 * m)
    return float(min(1.0, max(0.0, 1.0 - spread)))


def visual_ai_score(pixels: np.ndarray) -> float:
    """
    Generator-likeness from colour statistics, in [0, 1].

    Diffusion outputs tend to combine rich but even saturation, similar
    variance in all three channels (no chromatic aberration) and a balanced
    exposure. Weighted 0.70 / 0.10 / 0.20.
    """
    if pixels.shape[0] * pixels.shape[1] == 0:
        return 0.0
    sat = _saturation(pixels)
    mean_sat = float(sat.mean())
    sat_var = max(0.0, float(sat.var()))
    mean_lum = float((_rgb(pixels) / 255.0 @ _LUMA_WEIGHTS).mean())

    raw_uniform_sat = max(0.0, mean_sat - sat_var * 3.0)
    uniform_sat = max(0.0, min(1.0, (raw_uniform_sat - 0.15) / 0.25))
    lum_score = max(0.0, 1.0 - abs(mean_lum - 0.5) * 3.2)

    return uniform_sat * 0.70 + channel_uniformity(pixels) * 0.10 + lum_score * 0.20


@dataclass(frozen=True)
class FeatureVector:
    entropy: float
    unique_colors: int
    edge_complexity: float
    block_variance: float
    saturation_variance: float
    gradient_smoothness: float
    noise_floor: float
    high_frequency_ratio: float
    laplacian_sparsity: float
    channel_uniformity: float
    mean_saturation: float
    mean_luminance: float
    luminance_variance: float


def extract_features(pixels: np.ndarray) -> FeatureVector:
    """Compute every measure at once. `entropy` is normalized to [0, 1]."""
    sat = _saturation(pixels)
    lum = _rgb(pixels) / 255.0 @ _LUMA_WEIGHTS
    return FeatureVector(
        entropy=channel_entropy(pixels) / MAX_ENTROPY_BITS,
        unique_colors=count_unique_colors(pixels),
        edge_complexity=edge_complexity(pixels),
        block_variance=block_variance(pixels),
        saturation_variance=saturation_variance(pixels),
        gradient_smoothness=gradient_smoothness(pixels),
        noise_floor=noise_floor(pixels),
        high_frequency_ratio=high_frequency_ratio(pixels),
        laplacian_sparsity=laplacian_sparsity(pixels),
        channel_uniformity=channel_uniformity(pixels),
        mean_saturation=float(sat.mean()) if sat.size else 0.0,
        mean_luminance=float(lum.mean()) if lum.size else 0.0,
        luminance_variance=float(lum.var()) if lum.size else 0.0,
    )
