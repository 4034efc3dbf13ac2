import enum
import functools
import json
import logging
import pathlib
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from config import DEFAULT_LAYER_CONFIG, MANIFEST_PATH, RESERVED_RULES_KEY, LayerConfig
from errors import ManifestUnavailable

logger = logging.getLogger(__name__)

BUCKETS = ("male", "female", "neutral")
NEUTRAL_BUCKET = "neutral"

# compatibility_rules sections: (owner layer, section, blocks key, allows key, target layer)
GLOBAL_RULES = [
    ("hair", "hair_headwear_conflicts", "blocks", "allows", "headwear"),
    ("outerwear", "outerwear_combinations", "blocks_headwear", "allows_headwear", "headwear"),
]


class Gender(enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"

    @property
    def bucket(self) -> str:
        return self.value.lower()


@dataclass(frozen=True)
class AssetEntry:
    """A selectable asset of one layer, with its rules resolved at load time."""

    id: str
    incompatible_with: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    requires: Dict[str, FrozenSet[str]] = field(default_factory=dict)

    @property
    def has_rules(self) -> bool:
        return bool(self.incompatible_with or self.requires)

    def rejects(self, layer: str, asset_id: str) -> bool:
        """Whether this asset refuses ``asset_id`` in ``layer``."""
        if asset_id in self.incompatible_with.get(layer, ()):
            return True
        allowed = self.requires.get(layer)
        return allowed is not None and asset_id not in allowed


@dataclass(frozen=True)
class Manifest:
    layers: Dict[str, Dict[str, Tuple[AssetEntry, ...]]]
    index: Dict[Tuple[str, str], AssetEntry]

    def buckets(self, layer: str) -> Dict[str, Tuple[AssetEntry, ...]]:
        return self.layers.get(layer, {})

    def find(self, layer: str, asset_id: str) -> Optional[AssetEntry]:
        return self.index.get((layer, asset_id))

    @property
    def asset_count(self) -> int:
        return sum(
            len(entries) for buckets in self.layers.values() for entries in buckets.values()
        )


def load_manifest(
    path: pathlib.Path = MANIFEST_PATH, layer_config: LayerConfig = DEFAULT_LAYER_CONFIG
) -> Manifest:
    """Read and parse the layer manifest.

    Raises:
        ManifestUnavailable: if the file is missing, unreadable or not a JSON object.
    """
    path = pathlib.Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ManifestUnavailable(f"Cannot load layer manifest {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestUnavailable(f"Layer manifest {path} is not a JSON object")

    manifest = parse_manifest(data, layer_config)
    logger.info(
        "Loaded manifest %s: %d assets in %d layers",
        path,
        manifest.asset_count,
        len(manifest.layers),
    )
    return manifest


def parse_manifest(data: dict, layer_config: LayerConfig = DEFAULT_LAYER_CONFIG) -> Manifest:
    """Build a Manifest from decoded manifest JSON."""
    rule_suffixes = {name.replace("-", "_"): name for name in layer_config.names}
    raw_entries: Dict[str, Dict[str, List[dict]]] = {}

    for key, layer_data in data.items():
        if key == RESERVED_RULES_KEY:
            continue
        policy = layer_config.by_key(key)
        if policy is None:
            logger.debug("Ignoring unknown manifest layer %r", key)
            continue
        if not isinstance(layer_data, dict):
            logger.warning("Manifest layer %r is not an object, treating it as empty", key)
            layer_data = {}

        buckets = raw_entries.setdefault(policy.name, {})
        for bucket in BUCKETS:
            entries = layer_data.get(bucket) or []
            if not isinstance(entries, list):
                logger.warning("Manifest bucket %s/%s is not a list, skipping", key, bucket)
                continue
            parsed = buckets.setdefault(bucket, [])
            for entry in entries:
                raw = _parse_entry(entry, rule_suffixes)
                if raw is None:
                    logger.debug("Dropping manifest entry without file in %s/%s", key, bucket)
                    continue
                parsed.append(raw)

    _apply_global_rules(raw_entries, data.get(RESERVED_RULES_KEY) or {})

    layers = {}
    index = {}
    for layer, buckets in raw_entries.items():
        layers[layer] = {}
        for bucket, entries in buckets.items():
            frozen = tuple(_freeze(raw) for raw in entries)
            layers[layer][bucket] = frozen
            for entry in frozen:
                existing = index.get((layer, entry.id))
                # Prefer the entry that carries rules when an id is listed twice
                if existing is None or (entry.has_rules and not existing.has_rules):
                    index[(layer, entry.id)] = entry

    return Manifest(layers=layers, index=index)


def _parse_entry(entry, rule_suffixes: Dict[str, str]) -> Optional[dict]:
    """Normalize a string or object manifest entry into a mutable rule dict."""
    if isinstance(entry, str):
        entry = {"file": entry}
    if not isinstance(entry, dict) or not isinstance(entry.get("file"), str) or not entry["file"]:
        return None

    raw = {"id": entry["file"], "incompatible": {}, "requires": {}}
    for key, value in entry.items():
        for prefix, target in (("incompatible_", "incompatible"), ("requires_", "requires")):
            if not key.startswith(prefix):
                continue
            layer = rule_suffixes.get(key[len(prefix):])
            if layer is None or not isinstance(value, list):
                logger.debug("Ignoring rule %r on %s", key, entry["file"])
                continue
            if not value:
                # an empty list declares no restriction
                continue
            raw[target].setdefault(layer, set()).update(str(v) for v in value)
    return raw


def _apply_global_rules(raw_entries: Dict[str, Dict[str, List[dict]]], rules: dict) -> None:
    """Fold the compatibility_rules section into the entries it names."""
    if not isinstance(rules, dict):
        logger.warning("Ignoring malformed %s section", RESERVED_RULES_KEY)
        return

    for owner, section, blocks_key, allows_key, target in GLOBAL_RULES:
        section_rules = rules.get(section) or {}
        if not isinstance(section_rules, dict):
            logger.warning("Ignoring malformed %s.%s section", RESERVED_RULES_KEY, section)
            continue
        for asset_id, rule in section_rules.items():
            if not isinstance(rule, dict):
                continue
            matches = [
                raw
                for entries in raw_entries.get(owner, {}).values()
                for raw in entries
                if raw["id"] == asset_id
            ]
            if not matches:
                logger.warning("%s names unknown %s asset %r", section, owner, asset_id)
                continue
            blocks = rule.get(blocks_key)
            allows = rule.get(allows_key)
            for raw in matches:
                if isinstance(blocks, list) and blocks:
                    raw["incompatible"].setdefault(target, set()).update(str(v) for v in blocks)
                if isinstance(allows, list) and allows:
                    raw["requires"].setdefault(target, set()).update(str(v) for v in allows)


def _freeze(raw: dict) -> AssetEntry:
    return AssetEntry(
        id=raw["id"],
        incompatible_with={k: frozenset(v) for k, v in raw["incompatible"].items()},
        requires={k: frozenset(v) for k, v in raw["requires"].items()},
    )


@functools.lru_cache(maxsize=4)
def get_manifest(
    path: pathlib.Path = MANIFEST_PATH, layer_config: LayerConfig = DEFAULT_LAYER_CONFIG
) -> Manifest:
    """Process-wide cached manifest. Failed loads are not cached."""
    return load_manifest(pathlib.Path(path), layer_config)


def clear_manifest_cache() -> None:
    get_manifest.cache_clear()


def eligible_assets(manifest: Manifest, layer: str, gender: Gender) -> List[AssetEntry]:
    """Gender bucket assets followed by neutral ones, in manifest order."""
    if layer == RESERVED_RULES_KEY:
        return []
    buckets = manifest.buckets(layer)
    return list(buckets.get(gender.bucket, ())) + list(buckets.get(NEUTRAL_BUCKET, ()))
