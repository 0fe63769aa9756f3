"""Visual configuration of a rendered QR code and partial updates to it."""

import math
import re
from dataclasses import dataclass, fields, replace
from typing import Any

from qrlanding.errors import ValidationError

ERROR_CORRECTION_LEVELS = ("L", "M", "Q", "H")

LOGO_SIZE_RANGE = (0, 40)
CORNER_RADIUS_RANGE = (0, 10)

_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


@dataclass(frozen=True)
class VisualConfiguration:
    """Everything that changes how the code looks.

    ``logo_size_percent`` is the logo side as a percentage of the image side.
    ``corner_radius_level`` is a 0-10 scale, each step rounding 5% of the side.
    """

    logo_size_percent: float = 30
    corner_radius_level: int = 0
    module_color: str = "#000000"
    background_color: str = "#ffffff"
    error_correction_level: str = "H"

    @classmethod
    def from_record(cls, record: Any) -> "VisualConfiguration":
        """Build a configuration from a persisted QR code row."""
        return cls(
            logo_size_percent=record.logo_size,
            corner_radius_level=record.corner_radius,
            module_color=record.module_color,
            background_color=record.background_color,
            error_correction_level=record.error_correction,
        )

    def check_bounds(self) -> "VisualConfiguration":
        """Raise ValidationError if any field is outside its declared range."""
        logo = self.logo_size_percent
        if (
            isinstance(logo, bool)
            or not isinstance(logo, (int, float))
            or math.isnan(logo)
            or not LOGO_SIZE_RANGE[0] <= logo <= LOGO_SIZE_RANGE[1]
        ):
            raise ValidationError(
                f"Logo size must be between {LOGO_SIZE_RANGE[0]} and {LOGO_SIZE_RANGE[1]}"
            )

        radius = self.corner_radius_level
        if (
            isinstance(radius, bool)
            or not isinstance(radius, int)
            or not CORNER_RADIUS_RANGE[0] <= radius <= CORNER_RADIUS_RANGE[1]
        ):
            raise ValidationError(
                f"Corner radius must be an integer between "
                f"{CORNER_RADIUS_RANGE[0]} and {CORNER_RADIUS_RANGE[1]}"
            )

        for name in ("module_color", "background_color"):
            value = getattr(self, name)
            if not isinstance(value, str) or not _HEX_COLOR_RE.match(value):
                raise ValidationError(f"Invalid {name} format. Use hex format like #000000")

        if self.error_correction_level not in ERROR_CORRECTION_LEVELS:
            raise ValidationError("Error correction level must be one of L, M, Q, H")

        return self


@dataclass(frozen=True)
class VisualConfigurationPatch:
    """Only the fields a caller wants to change; ``None`` means unchanged."""

    logo_size_percent: float | None = None
    corner_radius_level: int | None = None
    module_color: str | None = None
    background_color: str | None = None
    error_correction_level: str | None = None

    def changes(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


def apply_patch(
    config: VisualConfiguration, patch: VisualConfigurationPatch
) -> VisualConfiguration:
    """Merge a patch into a configuration and re-check the result."""
    return replace(config, **patch.changes()).check_bounds()
