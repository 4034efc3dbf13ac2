"""Exceptions raised by the character generation pipeline."""


class GenerationError(RuntimeError):
    """Base exception for internal generation failures."""
    pass


class ManifestUnavailable(GenerationError):
    """Raised when the layer manifest is missing or cannot be parsed."""
    pass


class AssetMissing(GenerationError):
    """
    Raised when a single layer asset cannot be loaded.

    Attributes:
        layer: Layer name the asset was selected for.
        asset_id: Identifier of the asset within the layer.
    """
    def __init__(self, message: str, layer: str = "", asset_id: str = ""):
        super().__init__(message)
        self.layer = layer
        self.asset_id = asset_id


class RenderFailure(GenerationError):
    """Raised when the output canvas cannot be created."""
    pass


class InvalidRequest(ValueError):
    """Raised for malformed caller input. Never answered with a fallback."""
    pass


class InvalidExplicitAssignment(InvalidRequest):
    """Raised when an explicit layer assignment does not cover the layer set."""
    pass
