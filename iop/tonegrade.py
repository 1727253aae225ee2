"""
tonegrade - sigmoid tone curve with a split-tone colour grade.
"""

import math

import numpy as np

from core.datatypes import InvalidParameterError

# BT.709 luma weights
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)

# per-channel (R, G, B) offsets: cool shadows, warm highlights
SHADOW_TINT = np.array([-0.05, 0.0, 0.05], dtype=np.float32)
HIGHLIGHT_TINT = np.array([0.08, 0.04, -0.02], dtype=np.float32)


def sigmoid_curve(x: np.ndarray, tone_a: float) -> np.ndarray:
    """Logistic tone curve centred on 0.5: 1 / (1 + exp(-a * (x - 0.5)))."""
    return 1.0 / (1.0 + np.exp(-tone_a * (x - 0.5)))


def luminance(rgb: np.ndarray) -> np.ndarray:
    """BT.709 luma of an (H, W, 3) float image."""
    return rgb[..., 0] * LUMA_WEIGHTS[0] + rgb[..., 1] * LUMA_WEIGHTS[1] + rgb[..., 2] * LUMA_WEIGHTS[2]


class Tonegrade:
    """
    Tone mapping and luminance-based grading.

    Every channel goes through a logistic S-curve, then shadows are pushed
    towards blue and highlights towards warm using masks derived from the
    luminance of the curved image. The luminance is returned too, since the
    glow and grain passes need it measured before the grade.
    """
    def __init__(self, tone_a: float = 5.0):
        """
        Args:
            tone_a (float): contrast steepness of the S-curve. Must be > 0;
                            0 flattens every pixel to 0.5. Practical range 1-10.
        """
        if not math.isfinite(tone_a) or tone_a <= 0:
            raise InvalidParameterError(f"tone_a must be > 0, got {tone_a}")
        self.tone_a = float(tone_a)

    def process(self, image: np.ndarray):
        """
        Args:
            image (np.ndarray): (H, W, 3) float image in [0, 1].

        Returns:
            tuple: (graded (H, W, 3) float32, luminance (H, W) float32)
        """
        curved = sigmoid_curve(image.astype(np.float32), np.float32(self.tone_a))
        lum = luminance(curved).astype(np.float32)

        shadow = np.clip((0.5 - lum) * 2.0, 0.0, 1.0)[..., None]
        highlight = np.clip((lum - 0.5) * 2.0, 0.0, 1.0)[..., None]

        graded = curved + shadow * SHADOW_TINT + highlight * HIGHLIGHT_TINT
        return np.clip(graded, 0.0, 1.0).astype(np.float32), lum
