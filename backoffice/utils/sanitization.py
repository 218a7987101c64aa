import html
from typing import Any, Optional

import bleach
from bleach.css_sanitizer import CSSSanitizer

# Tags a contract template body may contain
TEMPLATE_ALLOWED_TAGS = [
    "p",
    "br",
    "hr",
    "div",
    "span",
    "strong",
    "b",
    "em",
    "i",
    "u",
    "a",
    "ul",
    "ol",
    "li",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "blockquote",
    "table",
    "thead",
    "tbody",
    "tr",
    "th",
    "td",
]

TEMPLATE_ALLOWED_ATTRIBUTES = {
    "a": ["href", "title", "target"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan"],
    "*": ["class", "style"],
}

css_sanitizer = CSSSanitizer(
    allowed_css_properties=["color", "background-color", "font-weight", "text-align", "font-size"]
)


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string by escaping HTML special characters to prevent XSS.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(str(value), quote=True)


def sanitize_html(html_content: Optional[str]) -> str:
    """
    Strip everything but a safe subset of markup from template HTML.
    Placeholders like {{ contract.name }} pass through untouched.
    """
    if not html_content:
        return ""
    return bleach.clean(
        html_content,
        tags=TEMPLATE_ALLOWED_TAGS,
        attributes=TEMPLATE_ALLOWED_ATTRIBUTES,
        css_sanitizer=css_sanitizer,
        strip=True,
    )


def strip_tags(html_content: Optional[str]) -> str:
    """Plain text of an HTML fragment (used for PDF bodies)"""
    if not html_content:
        return ""
    return html.unescape(bleach.clean(html_content, tags=[], strip=True))


def clean_optional(value: Any) -> Any:
    """Trim strings; blank strings become None"""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value
