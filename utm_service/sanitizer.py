"""
Parameter sanitizing for incoming UTM values.
"""

import re
import warnings
from typing import Any, Dict, Mapping, Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning
from bs4.element import NavigableString, PreformattedString

# Campaign values like "newsletter.html" look like file names to bs4
warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)

# NUL and other C0 control characters except tab, newline, carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def strip_tags(value: str) -> str:
    """Remove markup, keeping only the text content.

    Text inside ``<script>`` and ``<style>`` is kept as plain text; comments,
    CDATA sections and declarations are dropped.
    """
    if "<" not in value and "&" not in value:
        return value
    soup = BeautifulSoup(value, "html.parser")
    return "".join(
        node for node in soup.descendants
        if isinstance(node, NavigableString) and not isinstance(node, PreformattedString)
    )


def clean_value(value: Any) -> str:
    """Clean a single raw parameter value.

    Args:
        value: Raw value; None is treated as an empty string

    Returns:
        The value without markup or control characters, trimmed
    """
    if value is None:
        return ""
    text = strip_tags(str(value))
    text = _CONTROL_CHARS.sub("", text)
    return text.strip()


def sanitize(params: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Clean every value and drop keys whose value ends up empty."""
    cleaned = {}
    for key, value in (params or {}).items():
        text = clean_value(value)
        if text:
            cleaned[key] = text
    return cleaned
