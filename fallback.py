from typing import Optional

from config import DEFAULT_LAYER_CONFIG, LayerConfig
from manifest import Gender
from models import GenerationResult

PLACEHOLDER_SIZE = 256
PLACEHOLDER_LAYERS = ("base", "hair", "background")

# Flat background colour per gender
BACKGROUND_COLORS = {
    Gender.MALE: "#4a5a3c",
    Gender.FEMALE: "#6b4a3c",
}

SVG_TEMPLATE = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" '
    'viewBox="0 0 {size} {size}">'
    '<rect width="{size}" height="{size}" fill="{background}"/>'
    '<rect x="78" y="48" width="100" height="170" rx="40" fill="#2b2b2b" stroke="#c9b98a" stroke-width="4"/>'
    '<text x="128" y="240" font-family="monospace" font-size="16" fill="#c9b98a" '
    'text-anchor="middle">{label}</text>'
    "</svg>"
)


def placeholder_svg(gender: Gender) -> bytes:
    svg = SVG_TEMPLATE.format(
        size=PLACEHOLDER_SIZE,
        background=BACKGROUND_COLORS[gender],
        label=f"{gender.value} PLACEHOLDER",
    )
    return svg.encode("utf-8")


def fallback(
    gender: Gender,
    layer_config: LayerConfig = DEFAULT_LAYER_CONFIG,
    warning: Optional[str] = None,
) -> GenerationResult:
    """Deterministic placeholder character, built without touching any file."""
    prefix = f"fallback-{gender.bucket}"
    assignment = {
        name: f"{prefix}-{name}" if name in PLACEHOLDER_LAYERS else None
        for name in layer_config.names
    }
    return GenerationResult(
        image=placeholder_svg(gender),
        assignment=assignment,
        used_fallback=True,
        mime_type="image/svg+xml",
        warning=warning,
    )
