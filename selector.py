import logging
from typing import List, Optional

import numpy as np

from compatibility import LayerAssignment, is_valid
from config import DEFAULT_LAYER_CONFIG, LayerConfig
from manifest import AssetEntry, Gender, Manifest, eligible_assets

logger = logging.getLogger(__name__)


def compatible_candidates(
    manifest: Manifest, layer: str, assignment: LayerAssignment, gender: Gender
) -> List[AssetEntry]:
    """Eligible assets that keep ``assignment`` valid once added to ``layer``."""
    candidates = []
    for entry in eligible_assets(manifest, layer, gender):
        trial = dict(assignment)
        trial[layer] = entry.id
        if is_valid(manifest, trial):
            candidates.append(entry)
    return candidates


def _pick(entries: List[AssetEntry], rng: np.random.Generator) -> str:
    return entries[int(rng.integers(len(entries)))].id


def select_layers(
    manifest: Manifest,
    gender: Gender,
    layer_config: LayerConfig = DEFAULT_LAYER_CONFIG,
    rng: Optional[np.random.Generator] = None,
) -> LayerAssignment:
    """Pick one asset per layer in two passes.

    Required layers are filled first, in layer order. When every eligible
    asset conflicts with an earlier pick, a required layer still takes a
    uniformly random eligible asset: presence outranks compatibility there.
    Optional layers are then each drawn with their probability and only ever
    take a compatible asset, so they can constrain nothing that came before.

    Args:
        manifest: Parsed layer manifest
        gender: Requested gender, selects the asset bucket
        layer_config: Ordered layer policies
        rng: Random source; a fresh unseeded generator when omitted

    Returns:
        Assignment covering every configured layer, None for empty layers
    """
    if rng is None:
        rng = np.random.default_rng()

    assignment: LayerAssignment = {name: None for name in layer_config.names}

    # First pass: required layers
    for layer in layer_config.layers:
        if not layer.required:
            continue
        candidates = compatible_candidates(manifest, layer.name, assignment, gender)
        if candidates:
            assignment[layer.name] = _pick(candidates, rng)
            continue

        available = eligible_assets(manifest, layer.name, gender)
        if available:
            assignment[layer.name] = _pick(available, rng)
            logger.warning(
                "No compatible %s asset for %s, keeping incompatible pick %s",
                layer.name,
                gender.value,
                assignment[layer.name],
            )
        else:
            logger.info("No %s assets for %s, leaving layer empty", layer.name, gender.value)

    # Second pass: optional layers, one draw each
    for layer in layer_config.layers:
        if layer.required:
            continue
        if rng.random() >= layer.probability:
            continue
        candidates = compatible_candidates(manifest, layer.name, assignment, gender)
        if candidates:
            assignment[layer.name] = _pick(candidates, rng)
        else:
            logger.debug("No compatible %s asset, leaving layer empty", layer.name)

    logger.debug("Selected layers: %s", assignment)
    return assignment
