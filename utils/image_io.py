"""
Image file helpers around the film look pipeline: decode, downscale,
encode and a before/after comparison strip. The pipeline itself only ever
sees PixelBuffer objects.
"""

import numpy as np
import imageio.v2 as imageio
from PIL import Image

from core.datatypes import PixelBuffer, UnsupportedFormatError


def _to_rgba8(arr: np.ndarray) -> np.ndarray:
    """Any decoded array (gray, RGB, RGBA; 8/16-bit or float) -> (H, W, 4) uint8."""
    if arr.dtype == np.uint16:
        arr = np.rint(arr.astype(np.float32) / 65535.0 * 255.0).astype(np.uint8)
    elif arr.dtype != np.uint8:
        arr = np.rint(np.clip(arr.astype(np.float32), 0, 1) * 255.0).astype(np.uint8)

    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    elif arr.ndim == 3 and arr.shape[2] == 2:  # gray + alpha
        arr = np.concatenate([arr[..., :1]] * 3 + [arr[..., 1:]], axis=-1)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise UnsupportedFormatError(f"Unsupported image shape: {arr.shape}")
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=-1)
    return np.ascontiguousarray(arr)


def load_image(path) -> PixelBuffer:
    """Decodes an image file into an 8-bit RGBA PixelBuffer."""
    try:
        arr = imageio.imread(path)
    except FileNotFoundError:
        raise
    except Exception as e:
        raise UnsupportedFormatError(f"Could not decode '{path}': {e}")
    return PixelBuffer.from_array(_to_rgba8(np.asarray(arr)))


def downscale(buffer: PixelBuffer, max_size: int = 1600) -> PixelBuffer:
    """
    Shrinks the image so its longest side is at most max_size. Never upscales.
    """
    scale = min(1.0, max_size / max(buffer.width, buffer.height))
    if scale >= 1.0:
        return buffer
    w = max(1, int(round(buffer.width * scale)))
    h = max(1, int(round(buffer.height * scale)))
    im = Image.fromarray(buffer.to_uint8().data)
    im = im.resize((w, h), Image.LANCZOS)
    return PixelBuffer.from_array(np.asarray(im))


def save_jpeg(buffer: PixelBuffer, path, quality: int = 90) -> None:
    """Writes the buffer as a JPEG (alpha is dropped)."""
    rgb = buffer.to_uint8().data[..., :3]
    Image.fromarray(np.ascontiguousarray(rgb)).save(path, 'JPEG', quality=int(quality))


def side_by_side(original: PixelBuffer, processed: PixelBuffer, gap: int = 8) -> PixelBuffer:
    """Original on the left, processed on the right, separated by a white gap."""
    a = original.to_uint8().data
    b = processed.to_uint8().data
    h = max(a.shape[0], b.shape[0])

    def pad(x):
        out = np.full((h, x.shape[1], 4), 255, dtype=np.uint8)
        out[:x.shape[0]] = x
        return out

    spacer = np.full((h, gap, 4), 255, dtype=np.uint8)
    return PixelBuffer.from_array(np.concatenate([pad(a), spacer, pad(b)], axis=1))
