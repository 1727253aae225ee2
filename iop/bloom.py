import numpy as np

from core.datatypes import EdgePolicy, InvalidDataError, InvalidParameterError
from iop.blurs import Blurs


class Bloom:
    """
    Glow around the bright parts of the image.

    Pixels whose luminance is above the threshold form a binary mask; the
    mask is blurred with zero edges into a glow field that decays with the
    distance from bright regions, and the field is added on top of the image.
    """
    def __init__(self, threshold=0.7, strength=0.4, radius=40.0, **kwargs):
        """
        Args:
            threshold (float): luminance cutoff, strictly exceeded to light a mask pixel. (0.0 to 1.0)
            strength (float): intensity of the additive glow. (0.0 to 1.0)
            radius (float): blur radius of the glow, in pixels. (>= 0)
        """
        if radius < 0:
            raise InvalidParameterError(f"Glow radius must be >= 0, got {radius}")
        self.threshold = threshold
        self.strength = strength
        self.radius = radius
        # the blurred mask is added back, so the frame border must not brighten
        self.blur = Blurs(radius=radius, edge_policy=EdgePolicy.ZERO)

    def build_mask(self, luminance):
        """Binary glow mask: 1.0 where luminance > threshold, else 0.0."""
        return (luminance > self.threshold).astype(np.float32)

    def glow_field(self, luminance):
        """Mask blurred with out-of-bounds samples treated as black."""
        return self.blur.process(self.build_mask(luminance))

    def process(self, image, luminance):
        """
        Args:
            image (np.ndarray): graded (H, W, 3) float image in [0, 1].
            luminance (np.ndarray): (H, W) luminance aligned with the image.

        Returns:
            np.ndarray: image with the glow added, clipped to [0, 1].
        """
        if luminance.shape != image.shape[:2]:
            raise InvalidDataError(
                f"Luminance shape {luminance.shape} doesn't match image {image.shape[:2]}")

        if self.strength == 0:
            return image.copy()
        if not (luminance > self.threshold).any():
            return image.copy()

        glow = self.glow_field(luminance)
        # the mask is grayscale, so every channel gets the same lift
        out = image + (glow * np.float32(self.strength))[..., None]
        return np.clip(out, 0.0, 1.0).astype(np.float32)
