"""
pipeline - The film look processing pipeline.
"""

import os
import time

import yaml

from core.datatypes import (
    DataType,
    FilmLookParams,
    InvalidDataError,
    PipelineError,
    PixelBuffer,
)
from iop.bloom import Bloom
from iop.grain import Grain, UniformNoise
from iop.soften import Soften
from iop.tonegrade import Tonegrade


class FilmLookPipeline:
    """
    Runs the four film look stages in a fixed order:

        tonegrade -> bloom -> grain -> soften

    The 8-bit input is converted to float once on the way in and back to
    8-bit RGBA once on the way out, so the two blurs never compound
    rounding error. No state is kept between calls apart from the
    (immutable) parameters and the noise source.

    usage:
        out = FilmLookPipeline(FilmLookParams()).process(buffer)
    """
    def __init__(self, params: FilmLookParams | None = None, noise=None) -> None:
        self.params = params if params is not None else FilmLookParams()
        self.noise = noise if noise is not None else UniformNoise()

    def stages(self, buffer: PixelBuffer, verbose: bool = False) -> dict:
        """
        Runs the pipeline and returns every intermediate float image.
        With verbose=True a progress line is printed before each stage.

        Returns:
            dict: 'luminance' (H, W) and 'tone', 'glow', 'grain', 'soft_focus' (H, W, 3),
                  all float32 in [0, 1].
        """
        p = self.params
        image = buffer.to_float32().data

        def step(i, name, values):
            if verbose:
                print(f"   - Step {i}/4: Applying module '{name}' with params {values}")

        step(1, "tonegrade", {"tone_a": p.tone_a})
        tone, lum = Tonegrade(p.tone_a).process(image)
        if lum.shape != tone.shape[:2]:
            raise InvalidDataError(
                f"Luminance shape {lum.shape} doesn't match image {tone.shape[:2]}")
        step(2, "bloom", {"threshold": p.glow_threshold, "strength": p.glow_strength,
                          "radius": p.glow_blur})
        glow = Bloom(threshold=p.glow_threshold, strength=p.glow_strength,
                     radius=p.glow_blur).process(tone, lum)
        step(3, "grain", {"strength": p.grain_strength})
        grain = Grain(strength=p.grain_strength, noise=self.noise).process(glow, lum)
        step(4, "soften", {"radius": p.soft_focus_radius, "strength": p.soft_focus_strength})
        soft = Soften(radius=p.soft_focus_radius, strength=p.soft_focus_strength).process(grain)

        return {
            'luminance': lum,
            'tone': tone,
            'glow': glow,
            'grain': grain,
            'soft_focus': soft,
        }

    def process(self, buffer: PixelBuffer, verbose: bool = False) -> PixelBuffer:
        """Returns a new 8-bit RGBA buffer of the same size. The input is left untouched."""
        soft = self.stages(buffer, verbose)['soft_focus']
        return PixelBuffer(soft, buffer.width, buffer.height, 3, DataType.FLOAT32).to_uint8()


def process(buffer: PixelBuffer, params: FilmLookParams | None = None, noise=None) -> PixelBuffer:
    """Applies the film look to an 8-bit RGBA buffer."""
    return FilmLookPipeline(params, noise).process(buffer)


def load_config(config_path: str) -> dict:
    """ Instantiation from a yaml file. """
    if not isinstance(config_path, (str, os.PathLike)):
        raise TypeError(
            f'expected a path string but given a {type(config_path)}'
        )
    with open(config_path, 'r', encoding='utf-8') as fp:
        cfg = yaml.safe_load(fp)
    return cfg or {}


def params_from_config(cfg: dict, presets=None) -> FilmLookParams:
    """
    Builds validated parameters from a config dict.

    A 'preset' entry provides the base values; entries under 'params'
    override them.
    """
    values = {}
    preset_name = cfg.get('preset')
    if preset_name:
        if presets is None:
            from presets.film_presets_manager import FilmPresetsManager
            presets = FilmPresetsManager()
        values.update(presets.get(preset_name).to_dict())
    values.update(cfg.get('params') or {})
    return FilmLookParams.from_dict(values)


def run_pipeline(config_path: str, compare: bool = False) -> str:
    """
    Runs the film look on the image named in a YAML config file.

    Returns:
        str: path of the written JPEG.
    """
    from utils.image_io import downscale, load_image, save_jpeg, side_by_side

    print("--- Starting Film Look Pipeline ---")
    start_time = time.time()

    # Get the absolute path of the config file to resolve other paths correctly
    base_dir = os.path.dirname(os.path.abspath(config_path))

    # 1. Load Configuration
    print(f"1. Loading configuration from: {config_path}")
    cfg = load_config(config_path)
    try:
        input_path = os.path.join(base_dir, cfg['input_file'])
    except KeyError:
        raise PipelineError("Config is missing 'input_file'")
    output_name = cfg.get('output_file') or \
        os.path.splitext(os.path.basename(input_path))[0] + '_film.jpg'
    output_path = os.path.join(base_dir, 'output', output_name)
    params = params_from_config(cfg)
    seed = cfg.get('seed')
    print(f"   - Parameters: {params.to_dict()}")

    # 2. Decode image
    print(f"2. Decoding image: {input_path}")
    original = load_image(input_path)
    original = downscale(original, cfg.get('max_size', 1600))
    print(f"   - Image dimensions: {original.width}x{original.height}")

    # 3. Execute Pipeline Steps
    print("3. Executing film look pipeline...")
    pipeline = FilmLookPipeline(params, UniformNoise(seed))
    result = pipeline.process(original, verbose=True)
    print("   - Pipeline execution finished.")

    # 4. Save Output
    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    print(f"4. Saving final image to: {output_path}")
    save_jpeg(result, output_path, quality=cfg.get('jpeg_quality', 90))

    if compare:
        compare_path = os.path.splitext(output_path)[0] + '_compare.jpg'
        print(f"   - Saving before/after comparison to: {compare_path}")
        save_jpeg(side_by_side(original, result), compare_path, quality=cfg.get('jpeg_quality', 90))

    end_time = time.time()
    print(f"--- Pipeline Finished in {end_time - start_time:.2f} seconds ---")
    return output_path
