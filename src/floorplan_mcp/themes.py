"""
Theme definitions for Floorplan-MCP.

Provides dark and light color palettes for rendering floorplans.
Each theme defines colors for:
- Image background and title
- Module containers (fill per nesting depth, border, header label)
- Local-logic blocks
- Overlap markers
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class ThemePalette:
    """Color palette for a theme."""

    # Image
    background: str
    title_color: str

    # Module containers, fills cycle by depth
    container_fills: tuple[str, ...]
    container_fill_alpha: int
    container_border: str
    container_label: str

    # Local-logic blocks
    logic_fill: str
    logic_fill_alpha: int
    logic_border: str
    logic_label: str

    # Overlap markers
    overlap_fill: str
    overlap_fill_alpha: int
    overlap_border: str


# Catppuccin Mocha (dark theme) - default
DARK_THEME = ThemePalette(
    background="#11111b",
    title_color="#cdd6f4",
    container_fills=("#1e1e2e", "#181825", "#313244", "#24273a"),
    container_fill_alpha=220,
    container_border="#89b4fa",
    container_label="#cdd6f4",
    logic_fill="#a6e3a1",
    logic_fill_alpha=70,
    logic_border="#a6e3a1",
    logic_label="#a6e3a1",
    overlap_fill="#f38ba8",
    overlap_fill_alpha=110,
    overlap_border="#f38ba8",
)


# Light theme - clean white background with darker accents
LIGHT_THEME = ThemePalette(
    background="#ffffff",
    title_color="#1e1e2e",
    container_fills=("#eff1f5", "#e6e9ef", "#dce0e8", "#ccd0da"),
    container_fill_alpha=230,
    container_border="#1e66f5",
    container_label="#4c4f69",
    logic_fill="#40a02b",
    logic_fill_alpha=60,
    logic_border="#40a02b",
    logic_label="#2b6a1e",
    overlap_fill="#d20f39",
    overlap_fill_alpha=90,
    overlap_border="#d20f39",
)


# Theme registry
THEMES: dict[str, ThemePalette] = {
    "dark": DARK_THEME,
    "light": LIGHT_THEME,
}


def get_theme(name: str) -> ThemePalette:
    """Get a theme palette by name.

    Args:
        name: Theme name ("dark" or "light")

    Returns:
        ThemePalette for the requested theme

    Raises:
        ValueError: If theme name is not recognized
    """
    if name not in THEMES:
        valid = ", ".join(THEMES.keys())
        raise ValueError(f"Unknown theme '{name}'. Valid themes: {valid}")
    return THEMES[name]
