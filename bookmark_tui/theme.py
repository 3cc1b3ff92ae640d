"""Theme definitions for Bookmark TUI.

Each display theme has a corresponding Textual Theme that controls the base
UI colors ($background, $surface, $panel, $primary, $secondary, etc.) used
by styles.tcss.
"""

from textual.theme import Theme

# Keys match config.THEMES.
TEXTUAL_THEMES: dict[str, Theme] = {
    "dark": Theme(
        name="bookmarks-dark",
        primary="#3b82f6",
        secondary="#16a34a",
        accent="#eab308",
        background="#0b0b0f",
        surface="#15151c",
        panel="#2a2a35",
        success="#16a34a",
        warning="#eab308",
        error="#ef4444",
        dark=True,
    ),
    "light": Theme(
        name="bookmarks-light",
        primary="#2563eb",
        secondary="#15803d",
        accent="#ca8a04",
        background="#fafafa",
        surface="#f0f0f0",
        panel="#cccccc",
        success="#15803d",
        warning="#ca8a04",
        error="#dc2626",
        dark=False,
    ),
}


def textual_theme_name(key: str) -> str:
    """Map a config theme key to the registered Textual theme name."""
    theme = TEXTUAL_THEMES.get(key) or TEXTUAL_THEMES["dark"]
    return theme.name
