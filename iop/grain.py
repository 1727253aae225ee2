import itertools

import numpy as np

from core.datatypes import InvalidDataError, InvalidParameterError


class UniformNoise:
    """Uniform noise in [-1, 1). Unseeded by default."""
    def __init__(self, seed=None):
        self.rng = np.random.default_rng(seed)

    def next(self) -> float:
        return float(self.rng.uniform(-1.0, 1.0))

    def sample(self, shape) -> np.ndarray:
        return self.rng.uniform(-1.0, 1.0, size=shape).astype(np.float32)


class SequenceNoise:
    """Cycles through a fixed list of values in [-1, 1]."""
    def __init__(self, values):
        values = [float(v) for v in values]
        if not values:
            raise InvalidParameterError("SequenceNoise needs at least one value")
        if any(v < -1.0 or v > 1.0 for v in values):
            raise InvalidParameterError("SequenceNoise values must lie in [-1, 1]")
        self._cycle = itertools.cycle(values)

    def next(self) -> float:
        return next(self._cycle)

    def sample(self, shape) -> np.ndarray:
        count = int(np.prod(shape))
        return np.fromiter(self._cycle, dtype=np.float32, count=count).reshape(shape)


class Grain:
    """
    Monochrome photographic grain.

    One noise sample is drawn per pixel and added identically to R, G and B,
    so the grain has no chroma. It is weighted by luminance, visible
    everywhere but stronger in bright areas.
    """
    def __init__(self, strength=0.02, noise=None, **kwargs):
        """
        Args:
            strength (float): grain amplitude. (0.0 to 0.1)
            noise: source with sample(shape) returning values in [-1, 1].
                   Defaults to an unseeded UniformNoise.
        """
        if strength < 0:
            raise InvalidParameterError(f"Grain strength must be >= 0, got {strength}")
        self.strength = strength
        self.noise = noise if noise is not None else UniformNoise()

    def process(self, image, luminance):
        """
        Args:
            image (np.ndarray): (H, W, 3) float image in [0, 1].
            luminance (np.ndarray): (H, W) luminance aligned with the image.

        Returns:
            np.ndarray: image with grain, clipped to [0, 1].
        """
        if luminance.shape != image.shape[:2]:
            raise InvalidDataError(
                f"Luminance shape {luminance.shape} doesn't match image {image.shape[:2]}")
        if self.strength == 0:
            return image.copy()

        noise = self.noise.sample(luminance.shape) * np.float32(self.strength)
        weight = 0.7 + 0.3 * luminance
        grain = (noise * weight)[..., None]
        return np.clip(image + grain, 0.0, 1.0).astype(np.float32)
