import itertools
import logging
from typing import Dict, List, Optional, Tuple

from manifest import Manifest

logger = logging.getLogger(__name__)

LayerAssignment = Dict[str, Optional[str]]


def conflicts(manifest: Manifest, assignment: LayerAssignment) -> List[Tuple[str, str]]:
    """Return every pair of populated layers whose assets refuse each other.

    Both assets of a pair are checked, so a rule declared on either side
    invalidates the pairing.
    """
    populated = [(layer, asset_id) for layer, asset_id in assignment.items() if asset_id]
    found = []
    for (layer_a, id_a), (layer_b, id_b) in itertools.combinations(populated, 2):
        if _pair_conflicts(manifest, layer_a, id_a, layer_b, id_b):
            found.append((layer_a, layer_b))
    return found


def is_valid(manifest: Manifest, assignment: LayerAssignment) -> bool:
    """Whether a full or partial assignment violates no declared rule."""
    populated = [(layer, asset_id) for layer, asset_id in assignment.items() if asset_id]
    for (layer_a, id_a), (layer_b, id_b) in itertools.combinations(populated, 2):
        if _pair_conflicts(manifest, layer_a, id_a, layer_b, id_b):
            logger.debug("Blocked: %s/%s with %s/%s", layer_a, id_a, layer_b, id_b)
            return False
    return True


def _pair_conflicts(manifest: Manifest, layer_a: str, id_a: str, layer_b: str, id_b: str) -> bool:
    entry_a = manifest.find(layer_a, id_a)
    if entry_a is not None and entry_a.rejects(layer_b, id_b):
        return True
    entry_b = manifest.find(layer_b, id_b)
    return entry_b is not None and entry_b.rejects(layer_a, id_a)
