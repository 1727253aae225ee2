import os

import imageio.v2 as imageio
import numpy as np
import pytest
import yaml

from core.datatypes import DataType, FilmLookParams, InvalidParameterError, PixelBuffer
from core.pipeline import FilmLookPipeline, load_config, params_from_config, process, run_pipeline
from iop.grain import UniformNoise
from iop.tonegrade import Tonegrade


def random_buffer(h, w, seed=0):
    data = np.random.default_rng(seed).integers(0, 256, size=(h, w, 4), dtype=np.uint8)
    return PixelBuffer.from_array(data)


def tone_only(buffer, tone_a):
    graded, _ = Tonegrade(tone_a).process(buffer.to_float32().data)
    return PixelBuffer(graded, buffer.width, buffer.height, 3, DataType.FLOAT32).to_uint8()


@pytest.mark.parametrize("h,w", [(1, 1), (3, 5), (17, 9), (40, 64)])
def test_dimensions_preserved(h, w):
    buf = random_buffer(h, w)
    out = process(buf, FilmLookParams(glow_blur=12, soft_focus_radius=6), UniformNoise(seed=1))
    assert (out.width, out.height) == (w, h)
    assert out.data.shape == (h, w, 4)
    assert out.datatype == DataType.UINT8
    assert (out.data[..., 3] == 255).all()


def test_input_not_mutated():
    buf = random_buffer(20, 30, seed=2)
    before = buf.data.copy()
    FilmLookPipeline(FilmLookParams(), UniformNoise(seed=3)).process(buf)
    assert np.array_equal(buf.data, before)


def test_zero_strengths_equal_tone_grade():
    buf = random_buffer(24, 32, seed=4)
    params = FilmLookParams(tone_a=6.5, glow_strength=0, grain_strength=0, soft_focus_strength=0,
                            glow_threshold=0.1)
    out = process(buf, params)
    assert np.array_equal(out.data, tone_only(buf, 6.5).data)


def test_seeded_runs_are_reproducible():
    buf = random_buffer(16, 16, seed=5)
    params = FilmLookParams(grain_strength=0.1)
    a = process(buf, params, UniformNoise(seed=9))
    b = process(buf, params, UniformNoise(seed=9))
    no_grain = process(buf, params.replace(grain_strength=0))
    assert np.array_equal(a.data, b.data)
    assert not np.array_equal(a.data, no_grain.data)


def test_flat_gray_scenario():
    buf = PixelBuffer.from_array(np.full((2, 2, 3), 128, dtype=np.uint8))
    params = FilmLookParams(tone_a=5, grain_strength=0)
    pipeline = FilmLookPipeline(params)
    stages = pipeline.stages(buf)

    expected_lum = 1.0 / (1.0 + np.exp(-5.0 * (128 / 255 - 0.5)))
    assert np.allclose(stages['luminance'], expected_lum, atol=1e-6)

    out = pipeline.process(buf).data
    assert (out == out[0, 0]).all()
    # luminance ~0.502 is below the 0.7 threshold, so the glow adds nothing
    assert np.array_equal(out, tone_only(buf, 5).data)


def test_flat_bright_scenario_adds_constant_glow():
    buf = PixelBuffer.from_array(np.full((2, 2, 3), 128, dtype=np.uint8))
    params = FilmLookParams(tone_a=5, grain_strength=0, glow_threshold=0.3)
    stages = FilmLookPipeline(params).stages(buf)
    lift = stages['glow'] - stages['tone']
    assert lift.min() > 0
    assert np.allclose(lift, lift[0, 0, 0], atol=1e-6)
    out = FilmLookPipeline(params).process(buf).data
    assert (out == out[0, 0]).all()


def test_stages_match_process():
    buf = random_buffer(12, 10, seed=6)
    params = FilmLookParams(grain_strength=0)
    pipeline = FilmLookPipeline(params)
    stages = pipeline.stages(buf)
    assert set(stages) == {'luminance', 'tone', 'glow', 'grain', 'soft_focus'}
    assert np.array_equal(stages['glow'], stages['grain'])
    final = PixelBuffer(stages['soft_focus'], 10, 12, 3, DataType.FLOAT32).to_uint8()
    assert np.array_equal(final.data, pipeline.process(buf).data)


def test_output_stays_in_range_at_extremes():
    buf = random_buffer(20, 20, seed=7)
    params = FilmLookParams(tone_a=10, glow_threshold=0, glow_strength=1, glow_blur=3,
                            grain_strength=0.1, soft_focus_strength=1, soft_focus_radius=2)
    stages = FilmLookPipeline(params, UniformNoise(seed=8)).stages(buf)
    for name in ('tone', 'glow', 'grain', 'soft_focus'):
        assert stages[name].min() >= 0.0 and stages[name].max() <= 1.0


def test_params_from_config_with_preset_and_overrides():
    cfg = {'preset': 'night_bloom', 'params': {'grain_strength': 0.0}}
    p = params_from_config(cfg)
    assert p.glow_strength == 0.7
    assert p.grain_strength == 0.0
    assert params_from_config({}) == FilmLookParams()
    with pytest.raises(InvalidParameterError):
        params_from_config({'params': {'tone_a': 50}})


def test_load_config(tmp_path):
    path = tmp_path / 'cfg.yaml'
    path.write_text(yaml.safe_dump({'input_file': 'a.png', 'params': {'toneA': 4}}))
    cfg = load_config(str(path))
    assert cfg['input_file'] == 'a.png'
    assert params_from_config(cfg).tone_a == 4.0
    with pytest.raises(TypeError):
        load_config(42)


def test_run_pipeline_end_to_end(tmp_path):
    img = np.random.default_rng(10).integers(0, 256, size=(30, 50, 3), dtype=np.uint8)
    imageio.imwrite(tmp_path / 'in.png', img)
    cfg = {
        'input_file': 'in.png',
        'output_file': 'out.jpg',
        'max_size': 25,
        'seed': 1,
        'params': {'glow_blur': 5, 'soft_focus_radius': 3},
    }
    config_path = tmp_path / 'pipeline_config.yaml'
    config_path.write_text(yaml.safe_dump(cfg))

    out_path = run_pipeline(str(config_path), compare=True)

    assert out_path == os.path.join(str(tmp_path), 'output', 'out.jpg')
    result = imageio.imread(out_path)
    assert result.shape[:2] == (15, 25)
    assert os.path.exists(os.path.join(str(tmp_path), 'output', 'out_compare.jpg'))


def test_tiny_soft_focus_radius_keeps_image():
    buf = PixelBuffer.from_array(np.full((6, 6, 3), 200, dtype=np.uint8))
    tiny = process(buf, FilmLookParams(grain_strength=0, soft_focus_radius=1e-170))
    none = process(buf, FilmLookParams(grain_strength=0, soft_focus_radius=0))
    assert np.array_equal(tiny.data, none.data)
    assert (tiny.data[..., :3] > 0).all()


def test_verbose_prints_each_stage(capsys):
    FilmLookPipeline(FilmLookParams(grain_strength=0)).process(random_buffer(4, 4), verbose=True)
    out = capsys.readouterr().out
    for i, name in enumerate(['tonegrade', 'bloom', 'grain', 'soften'], start=1):
        assert f"   - Step {i}/4: Applying module '{name}'" in out


def test_quiet_by_default(capsys):
    FilmLookPipeline(FilmLookParams(grain_strength=0)).process(random_buffer(4, 4))
    assert capsys.readouterr().out == ''
