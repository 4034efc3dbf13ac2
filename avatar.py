import logging
import os
import pathlib
from typing import Optional

import numpy as np
import pandas as pd
from progressbar import progressbar

from compositor import composite
from config import (
    DEFAULT_LAYER_CONFIG,
    DEFAULT_OUTPUT_SIZE,
    LAYERS_PATH,
    MANIFEST_PATH,
    OUTPUT_PATH,
    LayerConfig,
)
from errors import GenerationError, InvalidRequest
from fallback import fallback
from manifest import Gender, get_manifest
from models import GenerationRequest, GenerationResult, validate_explicit_assignment
from selector import select_layers

logger = logging.getLogger(__name__)

NONE_VALUE = "none"
FALLBACK_WARNING = "Character generation failed, using placeholder: {error}"


def generate(
    request: GenerationRequest,
    layer_config: LayerConfig = DEFAULT_LAYER_CONFIG,
    manifest_path: pathlib.Path = MANIFEST_PATH,
    layers_path: pathlib.Path = LAYERS_PATH,
    rng: Optional[np.random.Generator] = None,
) -> GenerationResult:
    """Generate a character image and the layer assignment behind it.

    Explicit assignments are composited as given. Random ones go through the
    manifest and the selector first. Any failure past request validation is
    answered with the placeholder character instead of an error.

    Raises:
        InvalidRequest: for a malformed request or explicit assignment.
    """
    if request.mode == "explicit":
        assignment = validate_explicit_assignment(request.explicit_assignment, layer_config)
    elif request.mode == "random":
        assignment = None
    else:
        raise InvalidRequest(f"Unknown generation mode {request.mode!r}")

    logger.info("Generating %s character with %s selection", request.gender.value, request.mode)
    try:
        if assignment is None:
            manifest = get_manifest(pathlib.Path(manifest_path), layer_config)
            assignment = select_layers(manifest, request.gender, layer_config, rng)
            if not any(assignment.values()):
                raise GenerationError(
                    f"No layer assets available for {request.gender.value}"
                )
        image = composite(assignment, request.output_size, layer_config, layers_path)
    except Exception as e:
        logger.exception("Character generation failed, falling back to placeholder")
        return fallback(
            request.gender, layer_config, warning=FALLBACK_WARNING.format(error=e)
        )

    return GenerationResult(image=image, assignment=assignment)


def generate_images(
    edition: str,
    count: int,
    gender: Gender,
    seed: Optional[int] = None,
    layer_config: LayerConfig = DEFAULT_LAYER_CONFIG,
    output_size: int = DEFAULT_OUTPUT_SIZE,
    manifest_path: pathlib.Path = MANIFEST_PATH,
    layers_path: pathlib.Path = LAYERS_PATH,
) -> pd.DataFrame:
    """Generate preview characters and return their layer table.

    Args:
        edition: Edition name for output directory
        count: Number of characters to generate
        gender: Gender of every generated character
        seed: Seed of the shared random source, for repeatable editions

    Returns:
        DataFrame with one column per layer plus a fallback flag
    """
    rng = np.random.default_rng(seed)
    usage = {name: [] for name in layer_config.names}
    fallbacks = []

    # Create output directory
    images_dir = OUTPUT_PATH / f"edition_{edition}" / "images"
    images_dir.mkdir(parents=True, exist_ok=True)

    # Calculate zero-padding width
    zfill_width = len(str(count - 1))

    request = GenerationRequest(gender=gender, output_size=output_size)
    for idx in progressbar(range(count)):
        result = generate(request, layer_config, manifest_path, layers_path, rng)
        suffix = ".svg" if result.used_fallback else ".png"
        (images_dir / f"{idx:0{zfill_width}d}{suffix}").write_bytes(result.image)

        for name in layer_config.names:
            usage[name].append(result.assignment.get(name) or NONE_VALUE)
        fallbacks.append(result.used_fallback)

    metadata_df = pd.DataFrame(usage)
    metadata_df["fallback"] = fallbacks
    print(f"Generated {count} characters ({sum(fallbacks)} placeholders)")

    return metadata_df


def layer_usage_stats(
    metadata_df: pd.DataFrame, layer_config: LayerConfig = DEFAULT_LAYER_CONFIG
) -> pd.DataFrame:
    """Compare the configured fill probability of each layer with the actual rate.

    Actual rates fall below target when compatibility rules or a lack of
    assets leave a layer empty.
    """
    rows = []
    for layer in layer_config.layers:
        if layer.name not in metadata_df.columns:
            continue
        series = metadata_df[layer.name]
        filled = series != NONE_VALUE
        rows.append(
            {
                "layer": layer.name,
                "required": layer.required,
                "target": 1.0 if layer.required else layer.probability,
                "actual": float(filled.mean()) if len(series) else 0.0,
                "distinct": int(series[filled].nunique()),
            }
        )
    stats = pd.DataFrame(rows, columns=["layer", "required", "target", "actual", "distinct"])
    stats["diff"] = (stats["actual"] - stats["target"]).abs()
    return stats.set_index("layer")


def print_layer_usage(stats: pd.DataFrame) -> None:
    for name, row in stats.iterrows():
        print(
            f"  {name}: {row['actual']:.4f} (target: {row['target']:.4f}, "
            f"diff: {row['diff']:.4f}, distinct assets: {row['distinct']})"
        )
    if len(stats):
        print(f"  Max difference: {stats['diff'].max():.4f}")


def main() -> None:
    """Interactive preview of a layer manifest."""
    logging.basicConfig(
        level=os.environ.get("AVATAR_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    print("Checking manifest...")
    manifest = get_manifest(MANIFEST_PATH, DEFAULT_LAYER_CONFIG)
    print(f"Manifest lists {manifest.asset_count} assets\n")

    count = int(input("How many characters would you like to preview? "))
    if count < 1:
        print("Nothing to generate")
        return
    gender = Gender(input("Gender (MALE/FEMALE): ").strip().upper())
    edition_name = input("What would you like to call this edition?: ").strip()
    seed_text = input("Random seed (leave empty for a random edition): ").strip()
    seed = int(seed_text) if seed_text else None

    print("Starting generation...")
    metadata_df = generate_images(edition_name, count, gender, seed)

    print("Saving metadata...")
    metadata_path = OUTPUT_PATH / f"edition_{edition_name}" / "metadata.csv"
    metadata_df.to_csv(metadata_path)

    print("\n=== Layer Usage ===")
    print_layer_usage(layer_usage_stats(metadata_df))

    print("Task complete!")


if __name__ == "__main__":
    main()
