"""Shared test fixtures."""

import json

import pytest
from PIL import Image

from config import LayerConfig
from manifest import clear_manifest_cache, parse_manifest

ASSET_SIZE = 8

# file -> (layer directory, RGBA colour); hair only covers the left half
ASSETS = {
    "male-base.png": ("1-base", (200, 0, 0, 255)),
    "female-base.png": ("1-base", (0, 0, 200, 255)),
    "mohawk.png": ("6-hair", (0, 200, 0, 255)),
    "buzz.png": ("6-hair", (0, 150, 0, 255)),
    "long.png": ("6-hair", (0, 100, 0, 255)),
    "bald.png": ("6-hair", (0, 50, 0, 255)),
    "helmet.png": ("8-headwear", (90, 90, 90, 255)),
    "cap.png": ("8-headwear", (120, 60, 0, 255)),
    "duster.png": ("5-outerwear", (80, 60, 40, 255)),
    "wasteland.png": ("backgrounds", (160, 140, 90, 255)),
    "dust.png": ("overlays", (255, 255, 255, 40)),
}
HALF_ASSETS = {"mohawk.png", "buzz.png", "long.png", "bald.png"}

SAMPLE_MANIFEST = {
    "1-base": {
        "male": ["male-base.png"],
        "female": ["female-base.png"],
        "neutral": [],
    },
    "6-hair": {
        "male": [{"file": "mohawk.png", "incompatible_headwear": ["helmet.png"]}, "buzz.png"],
        "female": ["long.png"],
        "neutral": ["bald.png"],
    },
    "8-headwear": {
        "neutral": ["helmet.png", {"file": "cap.png", "incompatible_base": ["female-base.png"]}],
    },
    "5-outerwear": {"neutral": ["duster.png"]},
    "backgrounds": {"neutral": ["wasteland.png"]},
    "overlays": {"neutral": ["dust.png"]},
    "unknown-layer": {"neutral": ["mystery.png"]},
    "compatibility_rules": {
        "hair_headwear_conflicts": {"long.png": {"blocks": ["helmet.png"]}},
        "outerwear_combinations": {"duster.png": {"allows_headwear": ["cap.png"]}},
        "style_themes": {"raider": {"preferred_combinations": [["mohawk.png", "duster.png"]]}},
    },
}

SMALL_LAYERS = [
    ("base", "1-base", True, 1.0),
    ("hair", "6-hair", True, 1.0),
    ("headwear", "8-headwear", False, 1.0),
    ("overlay", "overlays", False, 0.0),
]


def write_png(path, color, size=ASSET_SIZE, half=False):
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    width = size // 2 if half else size
    img.paste(color, (0, 0, width, size))
    img.save(path, format="PNG")
    return path


def write_manifest(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _fresh_manifest_cache():
    clear_manifest_cache()
    yield
    clear_manifest_cache()


@pytest.fixture
def layers_path(tmp_path):
    root = tmp_path / "layers"
    for name, (directory, color) in ASSETS.items():
        write_png(root / directory / name, color, half=name in HALF_ASSETS)
    return root


@pytest.fixture
def manifest_path(layers_path):
    return write_manifest(layers_path / "manifest.json", SAMPLE_MANIFEST)


@pytest.fixture
def sample_manifest():
    return parse_manifest(SAMPLE_MANIFEST)


@pytest.fixture
def small_config():
    return LayerConfig.from_table(SMALL_LAYERS)
