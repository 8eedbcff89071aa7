"""Built-in symbol ramps, sparsest to densest."""

from __future__ import annotations

from .models import SymbolRamp

DEFAULT_RAMP_NAME = "classic"

RAMPS: dict[str, SymbolRamp] = {
    "classic": SymbolRamp.from_string("classic", " .',:;clxokXdO0KN"),
    "standard": SymbolRamp.from_string("standard", " .:-=+*#%@"),
    "dense": SymbolRamp.from_string(
        "dense",
        " .'`^\",:;Il!i~+_-?][}{1)(|\\/tfjrxnuvczXYUJCLQ0OZmwqpdbkhao*#MW&8%B@$",
    ),
    "blocks": SymbolRamp.from_string("blocks", " ░▒▓█"),
}


def list_ramps() -> list[str]:
    return sorted(RAMPS.keys())


def get_ramp(name: str | None) -> SymbolRamp:
    if not name:
        return RAMPS[DEFAULT_RAMP_NAME]
    try:
        return RAMPS[name]
    except KeyError:
        raise KeyError(f"Unknown ramp {name!r}; known ramps: {', '.join(list_ramps())}") from None
