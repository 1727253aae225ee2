import math

import numpy as np
from scipy.ndimage import correlate1d

from core.datatypes import EdgePolicy, InvalidParameterError

# EdgePolicy -> scipy.ndimage boundary mode
_SCIPY_MODES = {
    EdgePolicy.CLAMP: "nearest",
    EdgePolicy.ZERO: "constant",
}


def gaussian_kernel(radius: float) -> np.ndarray:
    """
    Normalized 1-D Gaussian weights for a blur radius.

    sigma = radius / 2, half-width = ceil(3 * sigma).
    """
    sigma = radius / 2.0
    half = int(math.ceil(3.0 * sigma))
    if half == 0:
        return np.ones(1, dtype=np.float32)
    x = np.arange(-half, half + 1, dtype=np.float64)
    # x / sigma first: sigma * sigma underflows to 0 for tiny radii
    with np.errstate(over="ignore"):
        kernel = np.exp(-0.5 * (x / sigma) ** 2)
    kernel /= kernel.sum()
    return kernel.astype(np.float32)


def gaussian_blur(image: np.ndarray, radius: float, edge_policy: EdgePolicy) -> np.ndarray:
    """
    Separable Gaussian blur.

    Args:
        image (np.ndarray): float image, (H, W) or (H, W, C). Channels are blurred independently.
        radius (float): blur radius in pixels. radius <= 0 returns a copy.
        edge_policy (EdgePolicy): CLAMP replicates border pixels, ZERO treats
                                  out-of-bounds samples as black.

    Returns:
        np.ndarray: a new float32 array of the same shape.
    """
    if not isinstance(edge_policy, EdgePolicy):
        raise InvalidParameterError(f"'{edge_policy}' is not an EdgePolicy")
    src = np.asarray(image, dtype=np.float32)
    if radius <= 0:
        return src.copy()

    kernel = gaussian_kernel(radius)
    mode = _SCIPY_MODES[edge_policy]
    # horizontal pass, then vertical
    out = correlate1d(src, kernel, axis=1, mode=mode, cval=0.0)
    out = correlate1d(out, kernel, axis=0, mode=mode, cval=0.0)
    return out


class Blurs:
    """
    Gaussian blur as an image operation, with an explicit edge policy.

    The glow pass needs ZERO edges (the blurred mask is added back, edges
    must not brighten), the soft focus pass needs CLAMP edges (no dark halo
    around the frame), so the policy is always chosen by the caller.
    """

    def __init__(self, radius: float = 10.0, edge_policy: str = "clamp"):
        """
        Args:
            radius (float): blur radius in pixels, >= 0.
            edge_policy (EdgePolicy | str): 'clamp' or 'zero'.
        """
        try:
            self.edge_policy = EdgePolicy(edge_policy)
        except ValueError:
            raise InvalidParameterError(
                f"'{edge_policy}' is not a valid edge policy. "
                f"Available policies are: {[e.value for e in EdgePolicy]}")
        if not math.isfinite(radius) or radius < 0:
            raise InvalidParameterError(f"Blur radius must be >= 0, got {radius}")
        self.radius = float(radius)

    def process(self, image: np.ndarray) -> np.ndarray:
        return gaussian_blur(image, self.radius, self.edge_policy)
