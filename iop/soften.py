
import numpy as np

from core.datatypes import EdgePolicy, InvalidParameterError
from iop.blurs import Blurs


class Soften():
    """
    Soft focus diffusion: the image blended with a blurred copy of itself.
    """

    def __init__(self, radius: float = 10.0, strength: float = 0.3):
        """
        Initializes the Soften operation.

        Args:
            radius (float): The radius of the diffusion blur, in pixels.
                            Range [0.0, 50.0]. Default is 10.0.
            strength (float): The mix amount of the blurred copy.
                              0 leaves the image untouched, 1 is fully blurred.
                              Range [0.0, 1.0]. Default is 0.3.
        """
        if radius < 0:
            raise InvalidParameterError(f"Soft focus radius must be >= 0, got {radius}")
        if strength < 0 or strength > 1:
            raise InvalidParameterError(f"Soft focus strength must be in [0, 1], got {strength}")
        self.radius = radius
        self.strength = strength
        # Clamped edges, so the frame border does not pick up a dark halo
        self.blur = Blurs(radius=radius, edge_policy=EdgePolicy.CLAMP)

    def process(self, image: np.ndarray) -> np.ndarray:
        """
        Applies the soft focus to the image.

        Args:
            image (np.ndarray): The input image in RGB format, with values in [0, 1].

        Returns:
            np.ndarray: The processed image.
        """
        if self.strength == 0:
            return image.copy()

        blurred = self.blur.process(image)

        mix = np.float32(self.strength)
        output_image = (1.0 - mix) * image + mix * blurred

        return np.clip(output_image, 0, 1).astype(np.float32)
