# @Description: film look command line entry point
#
# usage:
#   python run.py pipeline_config.yaml
#   python run.py --input photo.jpg --output photo_film.jpg --preset night_bloom --compare

import argparse
import os
import sys
import time

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.datatypes import FilmLookParams, PARAM_RANGES, PipelineError
from core.pipeline import FilmLookPipeline, run_pipeline
from iop.grain import UniformNoise
from presets.film_presets_manager import FilmPresetsManager
from utils.image_io import downscale, load_image, save_jpeg, side_by_side


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Apply a film look (tone, glow, grain, soft focus) to an image")
    ap.add_argument("config", nargs="?", help="YAML pipeline config (overrides --input mode)")
    ap.add_argument("-i", "--input", help="input image")
    ap.add_argument("-o", "--output", help="output JPEG (default: <input>_film.jpg)")
    ap.add_argument("--preset", help="named preset from presets/film_presets.json")
    ap.add_argument("--list-presets", action="store_true", help="print the available presets and exit")
    ap.add_argument("--seed", type=int, default=None, help="grain seed, for reproducible output")
    ap.add_argument("--max-size", type=int, default=1600, help="longest side before processing")
    ap.add_argument("--quality", type=int, default=90, help="JPEG quality")
    ap.add_argument("--compare", action="store_true", help="also write a side-by-side before/after image")
    for name, (default, lo, hi, _) in PARAM_RANGES.items():
        ap.add_argument("--" + name.replace("_", "-"), dest=name, type=float, default=None,
                        help=f"[{lo:g}, {hi:g}], default {default:g}")
    return ap


def params_from_args(args, presets: FilmPresetsManager) -> FilmLookParams:
    params = presets.get(args.preset) if args.preset else FilmLookParams()
    overrides = {name: getattr(args, name) for name in PARAM_RANGES if getattr(args, name) is not None}
    return params.replace(**overrides) if overrides else params


def run_single(args) -> str:
    print("--- Starting Film Look Pipeline ---")
    start_time = time.time()
    presets = FilmPresetsManager()

    params = params_from_args(args, presets)
    print(f"1. Parameters: {params.to_dict()}")

    print(f"2. Decoding image: {args.input}")
    original = downscale(load_image(args.input), args.max_size)
    print(f"   - Image dimensions: {original.width}x{original.height}")

    print("3. Executing film look pipeline...")
    result = FilmLookPipeline(params, UniformNoise(args.seed)).process(original, verbose=True)

    output_path = args.output or os.path.splitext(args.input)[0] + "_film.jpg"
    print(f"4. Saving final image to: {output_path}")
    save_jpeg(result, output_path, quality=args.quality)
    if args.compare:
        compare_path = os.path.splitext(output_path)[0] + "_compare.jpg"
        print(f"   - Saving before/after comparison to: {compare_path}")
        save_jpeg(side_by_side(original, result), compare_path, quality=args.quality)

    print(f"--- Pipeline Finished in {time.time() - start_time:.2f} seconds ---")
    return output_path


def main(argv=None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    if args.list_presets:
        presets = FilmPresetsManager()
        for name in presets.names():
            print(f"{name:15s} {presets.descriptions[name]}")
        return 0

    if not args.config and not args.input:
        ap.error("either a config file or --input is required")

    try:
        if args.config:
            run_pipeline(args.config, compare=args.compare)
        else:
            run_single(args)
    except (PipelineError, KeyError, OSError) as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
