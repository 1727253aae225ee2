import numpy as np
import pytest

from core.datatypes import EdgePolicy, InvalidParameterError
from iop.blurs import gaussian_blur
from iop.soften import Soften


@pytest.fixture
def image():
    return np.random.default_rng(20).random((18, 24, 3)).astype(np.float32)


def test_strength_zero_is_identity(image):
    out = Soften(radius=10, strength=0.0).process(image)
    assert np.array_equal(out, image)


def test_strength_one_is_fully_blurred(image):
    out = Soften(radius=6, strength=1.0).process(image)
    assert np.allclose(out, gaussian_blur(image, 6, EdgePolicy.CLAMP), atol=1e-6)


def test_blend_weights(image):
    out = Soften(radius=4, strength=0.3).process(image)
    blurred = gaussian_blur(image, 4, EdgePolicy.CLAMP)
    assert np.allclose(out, 0.7 * image + 0.3 * blurred, atol=1e-6)


def test_no_dark_halo_at_edges():
    img = np.full((12, 12, 3), 0.8, dtype=np.float32)
    out = Soften(radius=20, strength=1.0).process(img)
    assert np.allclose(out, 0.8, atol=1e-6)


def test_input_untouched(image):
    before = image.copy()
    Soften(radius=5, strength=0.5).process(image)
    assert np.array_equal(image, before)


@pytest.mark.parametrize("radius,strength", [(-1, 0.3), (10, -0.1), (10, 1.5)])
def test_bad_arguments(radius, strength):
    with pytest.raises(InvalidParameterError):
        Soften(radius=radius, strength=strength)


def test_blur_stage_is_clamped(image):
    soften = Soften(radius=7, strength=1.0)
    assert soften.blur.edge_policy == EdgePolicy.CLAMP
    assert soften.blur.radius == 7.0
    assert np.array_equal(soften.process(image), np.clip(soften.blur.process(image), 0, 1))
