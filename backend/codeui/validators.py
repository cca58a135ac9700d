"""
Style value validation and normalization.

Each validator takes the raw value typed into the style panel (a string or a
number) and returns a ValidationResult whose sanitized value is safe to write
into an inline style. Validators never raise: unrecoverable input yields
``is_valid=False`` plus an error, recoverable but notable input yields
``is_valid=True`` plus a warning.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

from codeui.logger import get_logger

logger = get_logger(__name__)

StyleValue = Union[str, int, float]

_NUMBER = r"-?(?:\d+(?:\.\d*)?|\.\d+)"
_UNSIGNED = r"(?:\d+(?:\.\d*)?|\.\d+)"
_UNITS = r"px|em|rem|%|vh|vw|vmin|vmax|ch|ex|cm|mm|in|pt|pc"

_LENGTH_RE = re.compile(rf"^({_NUMBER})({_UNITS})?$", re.IGNORECASE)
_UNITLESS_RE = re.compile(rf"^{_NUMBER}$")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")
_LEADING_FLOAT_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

_HEX3_RE = re.compile(r"^#[0-9a-f]{3}$", re.IGNORECASE)
_HEX6_RE = re.compile(r"^#[0-9a-f]{6}$", re.IGNORECASE)
_HEX8_RE = re.compile(r"^#[0-9a-f]{8}$", re.IGNORECASE)
_RGB_RE = re.compile(
    rf"^rgba?\((\d+),\s*(\d+),\s*(\d+)(?:,\s*({_UNSIGNED}))?\)$", re.IGNORECASE
)
_HSL_RE = re.compile(
    rf"^hsla?\((\d+),\s*({_UNSIGNED})%,\s*({_UNSIGNED})%(?:,\s*({_UNSIGNED}))?\)$",
    re.IGNORECASE,
)
_SHADOW_RE = re.compile(
    rf"^(inset\s+)?({_NUMBER})(px|em|rem)?\s+({_NUMBER})(px|em|rem)?"
    rf"(\s+({_NUMBER})(px|em|rem)?)?(\s+({_NUMBER})(px|em|rem)?)?(\s+.+)?$",
    re.IGNORECASE,
)

NAMED_COLORS = {
    "transparent", "inherit", "initial", "currentcolor",
    "black", "white", "red", "green", "blue", "yellow", "cyan", "magenta",
    "gray", "grey", "orange", "pink", "purple", "brown", "navy", "teal",
    "olive", "maroon", "aqua", "fuchsia", "lime", "silver",
}

GLOBAL_KEYWORDS = ("inherit", "initial", "unset")
DIMENSION_KEYWORDS = GLOBAL_KEYWORDS + (
    "auto", "fit-content", "max-content", "min-content", "none",
)
FONT_SIZE_KEYWORDS = GLOBAL_KEYWORDS + (
    "xx-small", "x-small", "small", "medium", "large", "x-large", "xx-large",
    "smaller", "larger",
)
FONT_WEIGHT_KEYWORDS = ("normal", "bold", "bolder", "lighter") + GLOBAL_KEYWORDS
BORDER_WIDTH_KEYWORDS = ("thin", "medium", "thick") + GLOBAL_KEYWORDS


@dataclass
class ValidationResult:
    is_valid: bool
    sanitized_value: StyleValue
    error: Optional[str] = None
    warning: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "sanitizedValue": self.sanitized_value,
            "error": self.error,
            "warning": self.warning,
        }


StyleValidator = Callable[[StyleValue], ValidationResult]


# --- value parsers ---


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_number(value: float) -> str:
    """Render a number the way a stylesheet expects it (no trailing .0)"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_number(text: str) -> Union[int, float]:
    number = float(text)
    return int(number) if number.is_integer() else number


def parse_css_length(value: str) -> Optional[Tuple[float, str]]:
    """Parse a CSS length ("100px", "50%", "10rem"); a bare number means px"""
    match = _LENGTH_RE.match(value)
    if not match:
        return None
    return float(match.group(1)), (match.group(2) or "px").lower()


def _length_text(number: float, unit: str) -> str:
    return f"{format_number(number)}{unit}"


def _clamp(number, low, high):
    return min(high, max(low, number))


def parse_color(value: str) -> Tuple[bool, str]:
    """Validate a color and return it in normalized form"""
    if _HEX3_RE.match(value):
        r, g, b = value[1], value[2], value[3]
        return True, f"#{r}{r}{g}{g}{b}{b}".lower()
    if _HEX6_RE.match(value) or _HEX8_RE.match(value):
        return True, value.lower()

    rgb_match = _RGB_RE.match(value)
    if rgb_match:
        r, g, b = (_clamp(int(rgb_match.group(i)), 0, 255) for i in (1, 2, 3))
        alpha = rgb_match.group(4)
        a = _clamp(float(alpha), 0, 1) if alpha else 1
        if a == 1:
            return True, f"rgb({r}, {g}, {b})"
        return True, f"rgba({r}, {g}, {b}, {format_number(a)})"

    hsl_match = _HSL_RE.match(value)
    if hsl_match:
        h = int(hsl_match.group(1)) % 360
        s = format_number(_clamp(float(hsl_match.group(2)), 0, 100))
        lightness = format_number(_clamp(float(hsl_match.group(3)), 0, 100))
        alpha = hsl_match.group(4)
        a = _clamp(float(alpha), 0, 1) if alpha else 1
        if a == 1:
            return True, f"hsl({h}, {s}%, {lightness}%)"
        return True, f"hsla({h}, {s}%, {lightness}%, {format_number(a)})"

    if value.lower() in NAMED_COLORS:
        return True, value.lower()

    return False, value


def _parse_shorthand(parts, allow_auto: bool, allow_negative: bool):
    sanitized = []
    for part in parts:
        if allow_auto and part == "auto":
            sanitized.append(part)
            continue
        parsed = parse_css_length(part)
        if parsed is None or (not allow_negative and parsed[0] < 0):
            return None
        sanitized.append(_length_text(*parsed))
    return " ".join(sanitized)


# --- validators ---


def validate_dimension(value: StyleValue) -> ValidationResult:
    """Width, height and their min/max variants"""
    if _is_number(value):
        return ValidationResult(True, f"{format_number(value)}px")

    trimmed = str(value).strip()
    if trimmed in DIMENSION_KEYWORDS:
        return ValidationResult(True, trimmed)

    if trimmed.startswith("calc("):
        if trimmed.count("(") == trimmed.count(")"):
            return ValidationResult(True, trimmed)
        return ValidationResult(
            False, value, error="Unbalanced parentheses in calc()"
        )

    parsed = parse_css_length(trimmed)
    if parsed:
        if parsed[0] < 0:
            return ValidationResult(
                True,
                _length_text(*parsed),
                warning="Negative dimension values may cause unexpected layout",
            )
        return ValidationResult(True, _length_text(*parsed))

    return ValidationResult(
        False,
        value,
        error="Invalid dimension format. Use values like '100px', '50%', or 'auto'",
    )


def validate_spacing(value: StyleValue) -> ValidationResult:
    """Margin, padding, gap; accepts the 1-4 value shorthand"""
    if _is_number(value):
        return ValidationResult(True, f"{format_number(value)}px")

    trimmed = str(value).strip()
    if trimmed in ("auto",) + GLOBAL_KEYWORDS:
        return ValidationResult(True, trimmed)

    parsed = parse_css_length(trimmed)
    if parsed:
        return ValidationResult(True, _length_text(*parsed))

    parts = trimmed.split()
    if 1 <= len(parts) <= 4:
        shorthand = _parse_shorthand(parts, allow_auto=True, allow_negative=True)
        if shorthand is not None:
            return ValidationResult(True, shorthand)

    return ValidationResult(
        False,
        value,
        error="Invalid spacing format. Use values like '10px', '1rem', or 'auto'",
    )


def validate_color(value: StyleValue) -> ValidationResult:
    if _is_number(value):
        return ValidationResult(False, value, error="Color values must be strings")

    is_valid, normalized = parse_color(str(value).strip())
    if is_valid:
        return ValidationResult(True, normalized)

    return ValidationResult(
        False,
        value,
        error="Invalid color format. Use hex (#fff), rgb(), or named colors",
    )


def validate_font_size(value: StyleValue) -> ValidationResult:
    if _is_number(value):
        if value <= 0:
            return ValidationResult(
                False, value, error="Font size must be greater than 0"
            )
        return ValidationResult(True, f"{format_number(value)}px")

    trimmed = str(value).strip()
    if trimmed in FONT_SIZE_KEYWORDS:
        return ValidationResult(True, trimmed)

    parsed = parse_css_length(trimmed)
    if parsed:
        if parsed[0] <= 0:
            return ValidationResult(
                False, value, error="Font size must be greater than 0"
            )
        return ValidationResult(True, _length_text(*parsed))

    return ValidationResult(
        False,
        value,
        error="Invalid font size. Use values like '16px', '1.2rem', or 'medium'",
    )


def validate_font_weight(value: StyleValue) -> ValidationResult:
    if _is_number(value):
        if 100 <= value <= 900 and value % 100 == 0:
            return ValidationResult(True, value)
        if 1 <= value <= 1000:
            return ValidationResult(
                True,
                value,
                warning="Font weight values are typically 100-900 in increments of 100",
            )
    elif isinstance(value, str):
        trimmed = value.strip()
        if trimmed in FONT_WEIGHT_KEYWORDS:
            return ValidationResult(True, trimmed)

        match = _LEADING_INT_RE.match(trimmed)
        if match:
            number = int(match.group(0))
            if 100 <= number <= 900:
                return ValidationResult(True, number)

    return ValidationResult(
        False,
        value,
        error="Invalid font weight. Use values like 400, 700, 'normal', or 'bold'",
    )


def validate_opacity(value: StyleValue) -> ValidationResult:
    if _is_number(value):
        number = value
    else:
        match = _LEADING_FLOAT_RE.match(str(value).strip())
        if not match:
            return ValidationResult(
                False, value, error="Opacity must be a number between 0 and 1"
            )
        number = _as_number(match.group(0))

    clamped = _clamp(number, 0, 1)
    if clamped != number:
        return ValidationResult(
            True,
            clamped,
            warning=f"Opacity clamped from {format_number(number)} to {format_number(clamped)}",
        )
    return ValidationResult(True, clamped)


def validate_border_radius(value: StyleValue) -> ValidationResult:
    if _is_number(value):
        if value < 0:
            return ValidationResult(
                False, value, error="Border radius cannot be negative"
            )
        return ValidationResult(True, f"{format_number(value)}px")

    trimmed = str(value).strip()
    if trimmed in GLOBAL_KEYWORDS:
        return ValidationResult(True, trimmed)

    parsed = parse_css_length(trimmed)
    if parsed:
        if parsed[0] < 0:
            return ValidationResult(
                False, value, error="Border radius cannot be negative"
            )
        return ValidationResult(True, _length_text(*parsed))

    parts = trimmed.split()
    if 1 <= len(parts) <= 4:
        shorthand = _parse_shorthand(parts, allow_auto=False, allow_negative=False)
        if shorthand is not None:
            return ValidationResult(True, shorthand)

    return ValidationResult(
        False,
        value,
        error="Invalid border radius. Use values like '8px', '50%', or '4px 8px'",
    )


def validate_border_width(value: StyleValue) -> ValidationResult:
    if _is_number(value):
        if value < 0:
            return ValidationResult(
                False, value, error="Border width cannot be negative"
            )
        return ValidationResult(True, f"{format_number(value)}px")

    trimmed = str(value).strip()
    if trimmed in BORDER_WIDTH_KEYWORDS:
        return ValidationResult(True, trimmed)

    parsed = parse_css_length(trimmed)
    if parsed:
        if parsed[0] < 0:
            return ValidationResult(
                False, value, error="Border width cannot be negative"
            )
        return ValidationResult(True, _length_text(*parsed))

    return ValidationResult(
        False,
        value,
        error="Invalid border width. Use values like '1px', '2px', or 'thin'",
    )


def validate_line_height(value: StyleValue) -> ValidationResult:
    if _is_number(value):
        if value < 0:
            return ValidationResult(
                False, value, error="Line height cannot be negative"
            )
        return ValidationResult(True, value)

    trimmed = str(value).strip()
    if trimmed in ("normal",) + GLOBAL_KEYWORDS:
        return ValidationResult(True, trimmed)

    if _UNITLESS_RE.match(trimmed):
        number = _as_number(trimmed)
        if number < 0:
            return ValidationResult(
                False, value, error="Line height cannot be negative"
            )
        return ValidationResult(True, number)

    parsed = parse_css_length(trimmed)
    if parsed:
        if parsed[0] < 0:
            return ValidationResult(
                False, value, error="Line height cannot be negative"
            )
        return ValidationResult(True, _length_text(*parsed))

    return ValidationResult(
        False,
        value,
        error="Invalid line height. Use values like '1.5', '24px', or 'normal'",
    )


def validate_box_shadow(value: StyleValue) -> ValidationResult:
    if _is_number(value):
        return ValidationResult(
            False, value, error="Box shadow must be a string value"
        )

    trimmed = str(value).strip()
    if trimmed in ("none",) + GLOBAL_KEYWORDS:
        return ValidationResult(True, trimmed)

    if (
        _SHADOW_RE.match(trimmed)
        or "rgba(" in trimmed
        or "rgb(" in trimmed
        or "#" in trimmed
    ):
        return ValidationResult(True, trimmed)

    # Shadows are too varied to reject outright
    return ValidationResult(
        True,
        trimmed,
        warning="Complex box shadow - verify the value is correct",
    )


def validate_generic_text(value: StyleValue) -> ValidationResult:
    """Font family and other free-form values"""
    if _is_number(value):
        return ValidationResult(True, format_number(value))
    return ValidationResult(True, str(value).strip())


# --- dispatch ---

STYLE_VALIDATORS: Dict[str, StyleValidator] = {
    # Dimensions
    "width": validate_dimension,
    "height": validate_dimension,
    "minWidth": validate_dimension,
    "maxWidth": validate_dimension,
    "minHeight": validate_dimension,
    "maxHeight": validate_dimension,
    # Spacing
    "margin": validate_spacing,
    "marginTop": validate_spacing,
    "marginRight": validate_spacing,
    "marginBottom": validate_spacing,
    "marginLeft": validate_spacing,
    "padding": validate_spacing,
    "paddingTop": validate_spacing,
    "paddingRight": validate_spacing,
    "paddingBottom": validate_spacing,
    "paddingLeft": validate_spacing,
    "gap": validate_spacing,
    # Colors
    "color": validate_color,
    "backgroundColor": validate_color,
    "borderColor": validate_color,
    # Typography
    "fontSize": validate_font_size,
    "fontWeight": validate_font_weight,
    "lineHeight": validate_line_height,
    "letterSpacing": validate_spacing,
    "fontFamily": validate_generic_text,
    # Border
    "borderRadius": validate_border_radius,
    "borderWidth": validate_border_width,
    # Effects
    "opacity": validate_opacity,
    "boxShadow": validate_box_shadow,
}


def to_camel_case(prop: str) -> str:
    """background-color -> backgroundColor"""
    return re.sub(r"-([a-z])", lambda m: m.group(1).upper(), prop.strip())


def to_kebab_case(prop: str) -> str:
    """backgroundColor -> background-color"""
    return re.sub(r"([A-Z])", lambda m: "-" + m.group(1).lower(), prop.strip())


def validate_style_value(prop: str, value: StyleValue) -> ValidationResult:
    """Validate a value for a property; unknown properties pass through"""
    validator = STYLE_VALIDATORS.get(prop) or STYLE_VALIDATORS.get(to_camel_case(prop))
    if validator is None:
        return ValidationResult(True, value)

    result = validator(value)
    if not result.is_valid:
        logger.info(f"Rejected {prop}={value!r}: {result.error}")
    return result


def validate_styles(styles: Dict[str, StyleValue]) -> Dict[str, ValidationResult]:
    return {prop: validate_style_value(prop, value) for prop, value in styles.items()}
