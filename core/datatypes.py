"""
Core data types for the film look pipeline.
Pixel buffers, parameter container and error taxonomy.
"""

import math
from dataclasses import dataclass, asdict, fields, replace as dc_replace
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np


class PipelineError(Exception):
    """Base class for pipeline failures"""
    pass


class InvalidDataError(PipelineError):
    """Buffers that do not line up with each other"""
    pass


class InvalidDimensionsError(InvalidDataError, ValueError):
    """Width/height not positive, or data length does not match them"""
    pass


class InvalidParameterError(PipelineError, ValueError):
    """Parameter outside its documented domain"""
    pass


class UnsupportedFormatError(PipelineError):
    """Image file that cannot be decoded"""
    pass


class DataType(Enum):
    UINT8 = "uint8"
    FLOAT32 = "float32"


class EdgePolicy(Enum):
    """How a blur samples outside the buffer"""
    CLAMP = "clamp"  # replicate the border pixel
    ZERO = "zero"    # transparent black


@dataclass
class PixelBuffer:
    """
    Image buffer, row-major, top-left origin.

    At the pipeline boundary it holds 8-bit RGBA (channels=4, uint8);
    inside the pipeline it holds float32 RGB normalized to [0, 1].
    """
    data: np.ndarray
    width: int
    height: int
    channels: int
    datatype: DataType

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise InvalidDimensionsError(
                f"Width and height must be positive, got {self.width}x{self.height}")
        if self.data.ndim != 3:
            raise InvalidDimensionsError(f"Invalid data shape: {self.data.shape}")
        if self.data.shape != (self.height, self.width, self.channels):
            raise InvalidDimensionsError(
                f"Data shape {self.data.shape} doesn't match dimensions "
                f"{(self.height, self.width, self.channels)}")
        if self.data.dtype != np.dtype(self.datatype.value):
            raise InvalidDataError(
                f"Data dtype {self.data.dtype} doesn't match {self.datatype.value}")

    @classmethod
    def from_rgba_bytes(cls, raw, width: int, height: int) -> 'PixelBuffer':
        """Builds an 8-bit RGBA buffer from a flat byte sequence without stride padding."""
        if width <= 0 or height <= 0:
            raise InvalidDimensionsError(
                f"Width and height must be positive, got {width}x{height}")
        flat = np.frombuffer(bytes(raw), dtype=np.uint8)
        expected = width * height * 4
        if flat.size != expected:
            raise InvalidDimensionsError(
                f"Buffer length {flat.size} doesn't match {width}x{height}x4 = {expected}")
        data = flat.reshape(height, width, 4).copy()
        return cls(data, width, height, 4, DataType.UINT8)

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'PixelBuffer':
        """
        Wraps an (H, W, 3|4) array. uint8 RGB gets an opaque alpha channel,
        float arrays are kept as float32 RGB.
        """
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise InvalidDimensionsError(f"Expected an (H, W, 3|4) array, got {array.shape}")
        h, w, c = array.shape
        if array.dtype == np.uint8:
            if c == 3:
                alpha = np.full((h, w, 1), 255, dtype=np.uint8)
                array = np.concatenate([array, alpha], axis=2)
            return cls(array.copy(), w, h, 4, DataType.UINT8)
        rgb = array[..., :3].astype(np.float32)
        return cls(rgb, w, h, 3, DataType.FLOAT32)

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)

    def to_float32(self) -> 'PixelBuffer':
        """Fresh float32 RGB buffer in [0, 1]. Alpha is dropped."""
        if self.datatype == DataType.FLOAT32:
            return PixelBuffer(self.data[..., :3].copy(), self.width, self.height, 3, DataType.FLOAT32)
        rgb = self.data[..., :3].astype(np.float32) / 255.0
        return PixelBuffer(rgb, self.width, self.height, 3, DataType.FLOAT32)

    def to_uint8(self) -> 'PixelBuffer':
        """Fresh 8-bit RGBA buffer, fully opaque."""
        if self.datatype == DataType.UINT8:
            return PixelBuffer(self.data.copy(), self.width, self.height, self.channels, DataType.UINT8)
        rgb = np.rint(np.clip(self.data[..., :3], 0.0, 1.0) * 255.0).astype(np.uint8)
        alpha = np.full((self.height, self.width, 1), 255, dtype=np.uint8)
        return PixelBuffer(np.concatenate([rgb, alpha], axis=2),
                           self.width, self.height, 4, DataType.UINT8)

    def to_bytes(self) -> bytes:
        """Flat RGBA bytes."""
        return self.to_uint8().data.tobytes()


# field -> (default, min, max, slider step)
PARAM_RANGES: Dict[str, Tuple[float, float, float, float]] = {
    'tone_a': (5.0, 1.0, 10.0, 0.1),
    'glow_threshold': (0.7, 0.0, 1.0, 0.01),
    'glow_strength': (0.4, 0.0, 1.0, 0.01),
    'glow_blur': (40.0, 0.0, 100.0, 1.0),
    'grain_strength': (0.02, 0.0, 0.1, 0.001),
    'soft_focus_strength': (0.3, 0.0, 1.0, 0.01),
    'soft_focus_radius': (10.0, 0.0, 50.0, 1.0),
}

# keys used by the original web UI
CAMEL_CASE_KEYS = {
    'toneA': 'tone_a',
    'glowThreshold': 'glow_threshold',
    'glowStrength': 'glow_strength',
    'glowBlur': 'glow_blur',
    'grainStrength': 'grain_strength',
    'softFocusStrength': 'soft_focus_strength',
    'softFocusRadius': 'soft_focus_radius',
}


@dataclass(frozen=True)
class FilmLookParams:
    """Film look parameters. Immutable; validated on construction."""
    tone_a: float = 5.0               # tone-curve contrast steepness
    glow_threshold: float = 0.7       # luminance cutoff for the glow mask
    glow_strength: float = 0.4        # additive glow intensity
    glow_blur: float = 40.0           # glow blur radius, px
    grain_strength: float = 0.02      # grain amplitude
    soft_focus_strength: float = 0.3  # diffusion blend weight
    soft_focus_radius: float = 10.0   # diffusion blur radius, px

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            _, lo, hi, _ = PARAM_RANGES[f.name]
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise InvalidParameterError(f"{f.name} must be a number, got {value!r}")
            if not math.isfinite(value) or value < lo or value > hi:
                raise InvalidParameterError(f"{f.name}={value} is outside [{lo}, {hi}]")
            object.__setattr__(self, f.name, value)

    @classmethod
    def from_dict(cls, values: Dict[str, Any], clamp: bool = False) -> 'FilmLookParams':
        """
        Builds parameters from a mapping.

        Args:
            values (dict): snake_case or camelCase keys. Missing keys keep their defaults.
            clamp (bool): clamp out-of-range values into range instead of rejecting them.
        """
        kwargs = {}
        for key, value in (values or {}).items():
            name = CAMEL_CASE_KEYS.get(key, key)
            if name not in PARAM_RANGES:
                raise InvalidParameterError(f"Unknown parameter '{key}'")
            if clamp and isinstance(value, (int, float)) and math.isfinite(value):
                _, lo, hi, _ = PARAM_RANGES[name]
                value = min(max(float(value), lo), hi)
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def replace(self, **changes) -> 'FilmLookParams':
        return dc_replace(self, **changes)
