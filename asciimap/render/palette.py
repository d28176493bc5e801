# ANSI 16-color palette: names accepted in requests and their SGR codes.

COLOR_MODES: frozenset[str] = frozenset({"never", "always"})

ANSI_CODES: dict[str, int] = {
    "black": 30,
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "magenta": 35,
    "cyan": 36,
    "white": 37,
    "bright-black": 90,
    "bright-red": 91,
    "bright-green": 92,
    "bright-yellow": 93,
    "bright-blue": 94,
    "bright-magenta": 95,
    "bright-cyan": 96,
    "bright-white": 97,
}

# "" means "default": the element is left uncolored.
ALLOWED_COLORS: frozenset[str] = frozenset({"", *ANSI_CODES})

RESET = "\x1b[0m"


def colorize(text: str, color: str) -> str:
    """Wrap text in the SGR sequence for `color`. Empty color or text is returned as-is."""
    if not color or not text:
        return text
    return f"\x1b[{ANSI_CODES[color]}m{text}{RESET}"
