"""Text processing utility functions for spot names and descriptions."""

import re

# Kana plus CJK ideographs (extension A and unified)
_JAPANESE_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff]")
_CHINESE_RE = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff]")

SCRIPT_PATTERNS = {
    "ja": _JAPANESE_RE,
    "zh": _CHINESE_RE,
}


def base_name(name: str | None) -> str:
    """Return the display name without its `#tag` suffixes.

    >>> base_name("Himeji Castle #WorldHeritage #Japan")
    'Himeji Castle'
    """
    if not name:
        return ""
    return name.split("#")[0].strip()


def name_tags(name: str | None) -> list[str]:
    """Return the `#tag` annotations appended to a name, without the `#`."""
    if not name or "#" not in name:
        return []
    return [tag.strip() for tag in name.split("#")[1:] if tag.strip()]


def compose_name(base: str, tags: list[str]) -> str:
    """Append `#tag` suffixes to a base name."""
    base = base.strip()
    if not tags:
        return base
    return " ".join([base] + [f"#{tag}" for tag in tags])


def has_script(text: str | None, language: str) -> bool:
    """Check that text contains at least one character of the language's script.

    Languages written in Latin script always pass.
    """
    pattern = SCRIPT_PATTERNS.get(language)
    if pattern is None:
        return True
    if not text:
        return False
    return pattern.search(text) is not None


def clean_text(text: str | None) -> str:
    """Collapse whitespace and strip; None becomes an empty string."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()
