"""Tests for the placeholder character."""

from config import DEFAULT_LAYER_CONFIG
from fallback import fallback
from manifest import Gender


def test_fallback_is_deterministic():
    assert fallback(Gender.MALE) == fallback(Gender.MALE)
    assert fallback(Gender.FEMALE) == fallback(Gender.FEMALE)


def test_fallback_assignment_covers_every_layer():
    result = fallback(Gender.FEMALE)
    assert list(result.assignment) == list(DEFAULT_LAYER_CONFIG.names)
    assert result.assignment["base"] == "fallback-female-base"
    assert result.assignment["hair"] == "fallback-female-hair"
    assert result.assignment["background"] == "fallback-female-background"
    populated = [name for name, asset_id in result.assignment.items() if asset_id]
    assert populated == ["base", "hair", "background"]


def test_fallback_image_is_svg_keyed_by_gender():
    male = fallback(Gender.MALE)
    female = fallback(Gender.FEMALE)
    assert male.mime_type == "image/svg+xml"
    assert male.image.startswith(b"<svg")
    assert b"MALE PLACEHOLDER" in male.image
    assert male.image != female.image


def test_fallback_flags_and_warning():
    result = fallback(Gender.MALE, warning="manifest gone")
    assert result.used_fallback
    assert result.warning == "manifest gone"
    assert result.data_uri().startswith("data:image/svg+xml;base64,")


def test_fallback_follows_layer_config(small_config):
    result = fallback(Gender.MALE, small_config)
    assert result.assignment == {
        "base": "fallback-male-base",
        "hair": "fallback-male-hair",
        "headwear": None,
        "overlay": None,
    }
