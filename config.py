import os
import pathlib
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

# Layer configuration: (name, directory, required, probability)
# Order is the paint order, bottom to top.
LAYERS = [
    ("base", "1-base", True, 1.0),
    ("skin", "2-skin", False, 0.3),
    ("undergarments", "3-undergarments", False, 0.4),
    ("clothing", "4-clothing", False, 0.4),
    ("outerwear", "5-outerwear", False, 0.6),
    ("hair", "6-hair", True, 1.0),
    ("face-accessories", "7-face-accessories", False, 0.3),
    ("headwear", "8-headwear", False, 0.4),
    ("misc-accessories", "9-misc-accessories", False, 0.2),
    ("background", "backgrounds", True, 1.0),
    ("overlay", "overlays", False, 0.3),
]
LAYER_ORDER_VERSION = 1

GENDERS = ("MALE", "FEMALE")
RESERVED_RULES_KEY = "compatibility_rules"

# Path constants
LAYERS_PATH = pathlib.Path(os.environ.get("AVATAR_LAYERS_PATH", "public/layers"))
MANIFEST_PATH = LAYERS_PATH / "manifest.json"
OUTPUT_PATH = pathlib.Path("output")

DEFAULT_OUTPUT_SIZE = 400
MAX_OUTPUT_SIZE = 2048


@dataclass(frozen=True)
class LayerPolicy:
    name: str
    directory: str
    required: bool
    probability: float

    def __post_init__(self):
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError(
                f"Probability for layer {self.name!r} must be in [0, 1], "
                f"got {self.probability}"
            )


@dataclass(frozen=True)
class LayerConfig:
    """Ordered layer policies shared by the selector and the compositor."""

    layers: Tuple[LayerPolicy, ...]
    version: int = LAYER_ORDER_VERSION

    @classmethod
    def from_table(
        cls, table: Iterable[tuple], version: int = LAYER_ORDER_VERSION
    ) -> "LayerConfig":
        layers = tuple(LayerPolicy(*row) for row in table)
        names = [layer.name for layer in layers]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate layer names in configuration: {names}")
        return cls(layers=layers, version=version)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(layer.name for layer in self.layers)

    @property
    def required_names(self) -> Tuple[str, ...]:
        return tuple(layer.name for layer in self.layers if layer.required)

    @property
    def optional_names(self) -> Tuple[str, ...]:
        return tuple(layer.name for layer in self.layers if not layer.required)

    def get(self, name: str) -> Optional[LayerPolicy]:
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def by_key(self, key: str) -> Optional[LayerPolicy]:
        """Look a layer up by manifest key, which is its directory or its name."""
        for layer in self.layers:
            if key in (layer.directory, layer.name):
                return layer
        return None


DEFAULT_LAYER_CONFIG = LayerConfig.from_table(LAYERS)
