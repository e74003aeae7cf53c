"""
Colores de opciones de Airtable traducidos a RGB de Google Sheets (0..1).
"""
from typing import Dict, Optional

RgbColor = Dict[str, float]


def _rgb(red: float, green: float, blue: float) -> RgbColor:
    return {"red": red, "green": green, "blue": blue}


_WHITE = _rgb(1, 1, 1)
_DARK_YELLOW_TEXT = _rgb(0.3, 0.25, 0)

# nombre de color Airtable -> (fondo, texto)
AIRTABLE_COLORS: Dict[str, tuple[RgbColor, RgbColor]] = {
    # Light
    "blueLight": (_rgb(0.82, 0.88, 0.98), _rgb(0.1, 0.3, 0.6)),
    "cyanLight": (_rgb(0.8, 0.95, 0.95), _rgb(0.1, 0.5, 0.5)),
    "tealLight": (_rgb(0.8, 0.93, 0.9), _rgb(0.1, 0.45, 0.4)),
    "greenLight": (_rgb(0.85, 0.93, 0.85), _rgb(0.2, 0.5, 0.2)),
    "yellowLight": (_rgb(1.0, 0.98, 0.8), _rgb(0.55, 0.5, 0.1)),
    "orangeLight": (_rgb(1.0, 0.9, 0.8), _rgb(0.7, 0.4, 0.1)),
    "redLight": (_rgb(1.0, 0.85, 0.85), _rgb(0.7, 0.2, 0.2)),
    "pinkLight": (_rgb(1.0, 0.88, 0.93), _rgb(0.7, 0.2, 0.4)),
    "purpleLight": (_rgb(0.92, 0.87, 0.98), _rgb(0.45, 0.2, 0.6)),
    "grayLight": (_rgb(0.93, 0.93, 0.93), _rgb(0.35, 0.35, 0.35)),
    # Dark
    "blueDark": (_rgb(0.2, 0.4, 0.7), _WHITE),
    "cyanDark": (_rgb(0.15, 0.55, 0.6), _WHITE),
    "tealDark": (_rgb(0.15, 0.5, 0.45), _WHITE),
    "greenDark": (_rgb(0.2, 0.55, 0.25), _WHITE),
    "yellowDark": (_rgb(0.85, 0.75, 0.1), _DARK_YELLOW_TEXT),
    "orangeDark": (_rgb(0.85, 0.5, 0.2), _WHITE),
    "redDark": (_rgb(0.75, 0.22, 0.22), _WHITE),
    "pinkDark": (_rgb(0.8, 0.3, 0.5), _WHITE),
    "purpleDark": (_rgb(0.5, 0.3, 0.7), _WHITE),
    "grayDark": (_rgb(0.4, 0.4, 0.4), _WHITE),
    # Bright
    "blueBright": (_rgb(0.15, 0.5, 0.85), _WHITE),
    "cyanBright": (_rgb(0.1, 0.7, 0.75), _WHITE),
    "tealBright": (_rgb(0.1, 0.6, 0.55), _WHITE),
    "greenBright": (_rgb(0.15, 0.65, 0.3), _WHITE),
    "yellowBright": (_rgb(0.95, 0.85, 0.15), _DARK_YELLOW_TEXT),
    "orangeBright": (_rgb(0.95, 0.55, 0.15), _WHITE),
    "redBright": (_rgb(0.9, 0.25, 0.25), _WHITE),
    "pinkBright": (_rgb(0.9, 0.35, 0.55), _WHITE),
    "purpleBright": (_rgb(0.6, 0.35, 0.85), _WHITE),
    "grayBright": (_rgb(0.55, 0.55, 0.55), _WHITE),
}

DEFAULT_COLOR = "grayLight"

# Header de las pestañas
HEADER_BACKGROUND = _rgb(0.2, 0.4, 0.6)
HEADER_TEXT = _WHITE


def airtable_color_to_rgb(color: Optional[str]) -> tuple[RgbColor, RgbColor]:
    """(fondo, texto) para un color Airtable; desconocido o vacío -> grayLight."""
    bg, text = AIRTABLE_COLORS.get(color or "", AIRTABLE_COLORS[DEFAULT_COLOR])
    return dict(bg), dict(text)
