import io
import logging
import pathlib
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from PIL import Image

from compatibility import LayerAssignment
from config import DEFAULT_LAYER_CONFIG, LAYERS_PATH, MAX_OUTPUT_SIZE, LayerConfig, LayerPolicy
from errors import AssetMissing, RenderFailure

logger = logging.getLogger(__name__)

MAX_LOAD_WORKERS = 4


def create_canvas(output_size: int) -> Image.Image:
    """Create the transparent square canvas every layer is painted on."""
    if isinstance(output_size, bool) or not isinstance(output_size, int):
        raise RenderFailure(f"Output size must be an integer, got {output_size!r}")
    if not 1 <= output_size <= MAX_OUTPUT_SIZE:
        raise RenderFailure(f"Output size {output_size} outside 1..{MAX_OUTPUT_SIZE}")
    try:
        return Image.new("RGBA", (output_size, output_size), (0, 0, 0, 0))
    except (ValueError, MemoryError) as e:
        raise RenderFailure(f"Cannot create {output_size}px canvas: {e}") from e


def load_layer_image(
    layers_path: pathlib.Path, layer: LayerPolicy, asset_id: str, output_size: int
) -> Image.Image:
    """Load one asset, converted to RGBA and scaled to the canvas.

    Raises:
        AssetMissing: if the asset cannot be found or decoded.
    """
    if "/" in asset_id or "\\" in asset_id or asset_id in (".", ".."):
        raise AssetMissing(f"Invalid asset id {asset_id!r}", layer.name, asset_id)

    image_path = pathlib.Path(layers_path) / layer.directory / asset_id
    if not image_path.is_file():
        raise AssetMissing(f"Layer file not found: {image_path}", layer.name, asset_id)

    try:
        with Image.open(image_path) as source:
            img = source.convert("RGBA")
    except (OSError, ValueError) as e:
        raise AssetMissing(f"Cannot decode {image_path}: {e}", layer.name, asset_id) from e

    if img.size != (output_size, output_size):
        img = img.resize((output_size, output_size))
    return img


def _load_or_skip(
    layers_path: pathlib.Path, layer: LayerPolicy, asset_id: str, output_size: int
) -> Optional[Image.Image]:
    try:
        return load_layer_image(layers_path, layer, asset_id, output_size)
    except AssetMissing as e:
        logger.warning("Skipping layer %s/%s: %s", layer.name, asset_id, e)
        return None


def composite_image(
    assignment: LayerAssignment,
    output_size: int,
    layer_config: LayerConfig = DEFAULT_LAYER_CONFIG,
    layers_path: pathlib.Path = LAYERS_PATH,
) -> Image.Image:
    """Stack the assigned layers on a canvas in configured layer order.

    Loads run concurrently but painting follows ``layer_config`` only, so the
    insertion order of ``assignment`` never matters. A layer whose asset
    cannot be loaded is skipped.

    Raises:
        RenderFailure: if the canvas cannot be created.
    """
    canvas = create_canvas(output_size)

    populated: List[Tuple[LayerPolicy, str]] = [
        (layer, assignment[layer.name])
        for layer in layer_config.layers
        if assignment.get(layer.name)
    ]
    if not populated:
        return canvas

    with ThreadPoolExecutor(max_workers=min(MAX_LOAD_WORKERS, len(populated))) as executor:
        images = list(
            executor.map(
                lambda item: _load_or_skip(layers_path, item[0], item[1], output_size),
                populated,
            )
        )

    # Loop through layers in order and stack them on top of another
    painted = 0
    for (layer, asset_id), img in zip(populated, images):
        if img is None:
            continue
        canvas.paste(img, (0, 0), img)
        painted += 1
        logger.debug("Painted %s/%s", layer.name, asset_id)

    logger.info("Composited %d of %d layers at %dpx", painted, len(populated), output_size)
    return canvas


def composite(
    assignment: LayerAssignment,
    output_size: int,
    layer_config: LayerConfig = DEFAULT_LAYER_CONFIG,
    layers_path: pathlib.Path = LAYERS_PATH,
) -> bytes:
    """Composite the assignment and encode it as PNG bytes."""
    canvas = composite_image(assignment, output_size, layer_config, layers_path)
    buffer = io.BytesIO()
    canvas.save(buffer, format="PNG")
    return buffer.getvalue()
