"""Scannability risk scoring and auto-correction for QR visual settings.

The validator and the corrector read the same ``SAFE_LIMITS`` table. The UI
decides whether to expand details or offer auto-adjust from the exact risk
level, so the thresholds below are deliberately literal.
"""

import enum
import math
import re
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from qrlanding.services.visual_config import VisualConfiguration

SAFE_LIMITS = MappingProxyType(
    {
        "logo_size": MappingProxyType({"optimal": 20, "maximum": 30, "critical": 35}),
        # 3 = 15% rounding, 5 = 25%, 8 = 40%
        "corner_radius": MappingProxyType({"optimal": 3, "maximum": 5, "critical": 8}),
        "color_contrast": MappingProxyType({"optimal": 7, "minimum": 4.5, "critical": 3}),
    }
)

# Percent of the image side rounded away per corner radius level
RADIUS_PERCENT_PER_LEVEL = 5

# Combined-risk target the corrector scales down to
COMBINED_RISK_TARGET = 0.55

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


class RiskLevel(enum.Enum):
    """Scannability risk, totally ordered from LOW to CRITICAL."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)

    def at_least(self, other: "RiskLevel") -> "RiskLevel":
        """Return the worse of the two levels."""
        return self if self.rank >= other.rank else other


_RISK_ORDER = (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL)

_SUMMARY = {
    RiskLevel.CRITICAL: "⚠️ This QR code configuration will likely NOT scan!",
    RiskLevel.HIGH: "⚠️ This configuration may have scanning issues",
    RiskLevel.MEDIUM: "ℹ️ Configuration is acceptable but could be optimized",
    RiskLevel.LOW: "✅ QR code configuration looks good!",
}


@dataclass
class RiskAssessment:
    """Result of scoring a visual configuration."""

    is_valid: bool
    risk_level: RiskLevel
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


def parse_hex_color(value: str | None) -> tuple[int, int, int] | None:
    """Parse ``#rrggbb`` (hash optional) into an RGB tuple."""
    match = _HEX_RE.match(value or "")
    if not match:
        return None
    return tuple(int(part, 16) for part in match.groups())  # type: ignore[return-value]


def relative_luminance(rgb: tuple[int, int, int]) -> float:
    """WCAG relative luminance of an sRGB color."""
    channels = []
    for value in rgb:
        c = value / 255
        channels.append(c / 12.92 if c <= 0.03928 else math.pow((c + 0.055) / 1.055, 2.4))
    r, g, b = channels
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(color1: str, color2: str) -> float:
    """WCAG contrast ratio between two hex colors (1.0 to 21.0).

    Unparseable colors are treated as black.
    """
    lum1 = relative_luminance(parse_hex_color(color1) or (0, 0, 0))
    lum2 = relative_luminance(parse_hex_color(color2) or (0, 0, 0))
    brightest = max(lum1, lum2)
    darkest = min(lum1, lum2)
    return (brightest + 0.05) / (darkest + 0.05)


def combined_risk(logo_size_percent: float, corner_radius_level: float) -> float:
    """Heuristic merging logo fraction and corner rounding fraction."""
    return logo_size_percent / 100 + corner_radius_level / 10


def validate_scannability(config: VisualConfiguration) -> RiskAssessment:
    """Score a visual configuration for scannability.

    Risk only ever moves up. The summary sentence for the final level is
    prepended to the suggestions.
    """
    warnings: list[str] = []
    suggestions: list[str] = []
    risk = RiskLevel.LOW

    logo_limits = SAFE_LIMITS["logo_size"]
    radius_limits = SAFE_LIMITS["corner_radius"]
    contrast_limits = SAFE_LIMITS["color_contrast"]

    logo = config.logo_size_percent
    radius = config.corner_radius_level

    if logo is not None:
        if logo > logo_limits["critical"]:
            warnings.append("Logo is very large and may prevent scanning")
            suggestions.append(f"Reduce logo size to {logo_limits['maximum']}% or less")
            risk = RiskLevel.CRITICAL
        elif logo > logo_limits["maximum"]:
            warnings.append("Logo size is at the upper limit")
            suggestions.append("Consider reducing logo size to 25% for better reliability")
            risk = risk.at_least(RiskLevel.MEDIUM)
        elif logo > 25 and config.error_correction_level != "H":
            # informational, acceptable with high error correction
            warnings.append("Large logo requires high error correction")
            suggestions.append("Use high error correction (H) for better scanning")

    if radius is not None:
        radius_percent = radius * RADIUS_PERCENT_PER_LEVEL
        safe_radius = radius_limits["maximum"]
        if radius_percent >= 50:
            warnings.append("Fully rounded QR codes are not scannable")
            suggestions.append(
                f"Reduce corner radius to {safe_radius} or less "
                f"({safe_radius * RADIUS_PERCENT_PER_LEVEL}% rounding)"
            )
            risk = RiskLevel.CRITICAL
        elif radius_percent > 30:
            warnings.append("High corner radius may affect scanning")
            suggestions.append(f"Reduce corner radius to {safe_radius} or less for better reliability")
            risk = risk.at_least(RiskLevel.HIGH)
        elif radius_percent > 20:
            warnings.append("Corner radius is approaching the safe limit")
            risk = risk.at_least(RiskLevel.MEDIUM)

    if logo and radius:
        combined = combined_risk(logo, radius)
        if combined > 0.6:
            warnings.append("Combination of large logo and rounded corners is risky")
            suggestions.append("Reduce either logo size or corner radius")
            risk = risk.at_least(RiskLevel.HIGH)
        if combined > 0.8:
            warnings.append("This combination will likely fail to scan")
            suggestions.append("Significantly reduce logo size or corner radius")
            risk = RiskLevel.CRITICAL

    if config.module_color and config.background_color:
        contrast = contrast_ratio(config.module_color, config.background_color)
        if contrast < contrast_limits["critical"]:
            warnings.append("Very low color contrast will prevent scanning")
            suggestions.append("Use darker foreground color or lighter background")
            risk = RiskLevel.CRITICAL
        elif contrast < contrast_limits["minimum"]:
            warnings.append("Low color contrast may affect scanning")
            suggestions.append("Increase contrast between QR code and background")
            risk = risk.at_least(RiskLevel.HIGH)
        elif contrast < contrast_limits["optimal"]:
            warnings.append("Color contrast could be better")
            suggestions.append("Consider using black (#000000) for best results")
            risk = risk.at_least(RiskLevel.MEDIUM)

    rgb = parse_hex_color(config.module_color)
    if rgb and sum(rgb) / 3 > 128:
        warnings.append("Light QR colors are difficult to scan")
        suggestions.append("Use a darker color for better scanning")
        risk = risk.at_least(RiskLevel.HIGH)

    suggestions.insert(0, _SUMMARY[risk])

    return RiskAssessment(
        is_valid=risk is not RiskLevel.CRITICAL,
        risk_level=risk,
        warnings=warnings,
        suggestions=suggestions,
    )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def auto_adjust(config: VisualConfiguration) -> VisualConfiguration:
    """Pull a configuration back inside the safe limits.

    The result always re-validates as non-critical, and adjusting an
    already adjusted configuration changes nothing.
    """
    logo = config.logo_size_percent
    radius = config.corner_radius_level

    logo_max = SAFE_LIMITS["logo_size"]["maximum"]
    radius_max = SAFE_LIMITS["corner_radius"]["maximum"]

    if logo and logo > logo_max:
        logo = logo_max
    if radius and radius > radius_max:
        radius = radius_max

    if logo and radius:
        combined = combined_risk(logo, radius)
        if combined > COMBINED_RISK_TARGET:
            scale = COMBINED_RISK_TARGET / combined
            logo = _round_half_up(logo * scale)
            radius = _round_half_up(radius * scale)

            # rounding can land just above the target
            while logo and combined_risk(logo, radius) > COMBINED_RISK_TARGET:
                logo -= 1

    module_color = config.module_color
    background = config.background_color
    if (
        module_color
        and background
        and contrast_ratio(module_color, background) < SAFE_LIMITS["color_contrast"]["critical"]
    ):
        module_color = max(("#000000", "#ffffff"), key=lambda c: contrast_ratio(c, background))

    return replace(
        config,
        logo_size_percent=logo,
        corner_radius_level=radius,
        module_color=module_color,
    )
