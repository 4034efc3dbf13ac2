"""Request and result types of the character generation pipeline."""

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from compatibility import LayerAssignment
from config import DEFAULT_OUTPUT_SIZE, LayerConfig
from errors import InvalidExplicitAssignment, InvalidRequest
from manifest import Gender

MODES = ("random", "explicit")


@dataclass
class GenerationResult:
    image: bytes
    assignment: LayerAssignment
    used_fallback: bool = False
    mime_type: str = "image/png"
    warning: Optional[str] = None

    def data_uri(self) -> str:
        encoded = base64.b64encode(self.image).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass
class GenerationRequest:
    gender: Gender
    mode: str = "random"
    explicit_assignment: Optional[Dict[str, Optional[str]]] = field(default=None)
    output_size: int = DEFAULT_OUTPUT_SIZE

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "GenerationRequest":
        """Build a request from the JSON body sent by the HTTP handler.

        Accepts ``explicitAssignment``/``outputSize`` as well as the older
        ``layerSelection``/``specificLayers``/``imageSize`` field names.

        Raises:
            InvalidRequest: on an unknown gender, mode or a non integer size.
        """
        if not isinstance(payload, Mapping):
            raise InvalidRequest("Request body must be a JSON object")

        try:
            gender = Gender(payload.get("gender"))
        except ValueError:
            raise InvalidRequest("Valid gender (MALE/FEMALE) is required") from None

        mode = payload.get("mode", payload.get("layerSelection", "random"))
        if mode not in MODES:
            raise InvalidRequest(f"Mode must be one of {', '.join(MODES)}, got {mode!r}")

        explicit = payload.get("explicitAssignment", payload.get("specificLayers"))
        if mode == "explicit" and explicit is None:
            raise InvalidExplicitAssignment("Explicit mode requires explicitAssignment")

        output_size = payload.get("outputSize", payload.get("imageSize", DEFAULT_OUTPUT_SIZE))
        if isinstance(output_size, bool) or not isinstance(output_size, int):
            raise InvalidRequest(f"outputSize must be an integer, got {output_size!r}")

        return cls(
            gender=gender,
            mode=mode,
            explicit_assignment=explicit,
            output_size=output_size,
        )


def validate_explicit_assignment(assignment: Any, layer_config: LayerConfig) -> LayerAssignment:
    """Check that a caller supplied assignment names exactly the configured layers.

    Raises:
        InvalidExplicitAssignment: on missing or unknown layers or bad values.
    """
    if not isinstance(assignment, Mapping):
        raise InvalidExplicitAssignment("Explicit assignment must be an object")

    expected = set(layer_config.names)
    missing = sorted(expected - set(assignment))
    if missing:
        raise InvalidExplicitAssignment(f"Explicit assignment missing layers: {missing}")
    unknown = sorted(str(key) for key in set(assignment) - expected)
    if unknown:
        raise InvalidExplicitAssignment(f"Explicit assignment has unknown layers: {unknown}")

    for layer, asset_id in assignment.items():
        if asset_id is not None and not isinstance(asset_id, str):
            raise InvalidExplicitAssignment(
                f"Asset for layer {layer!r} must be a string or null, got {asset_id!r}"
            )
    return dict(assignment)
