"""
Books API — Input Sanitizers
=============================

What:  Normalizes client-supplied values before they reach the store.
How:   HTML handling uses BeautifulSoup with the stdlib `html.parser`
       backend; everything else is plain string processing.

Sanitizers:
    sanitize_text_field  → plain text: tags stripped, whitespace collapsed
    kses_post            → rich text: allow-listed tags/attributes only
    sanitize_key         → lowercase token of [a-z0-9_-]
    sanitize_title       → URL slug ("Hello, World!" → "hello-world")

Rich-text policy (kses_post):
    - Allowed tags keep only their allowed attributes
    - Unknown tags are unwrapped (their text survives)
    - Script-like containers are removed together with their content
    - HTML comments are removed
    - href/src/cite values must use a safe protocol or be relative
"""

import re
import unicodedata
from typing import Dict, FrozenSet, Optional

from bs4 import BeautifulSoup, Comment

# Tags removed together with everything inside them
_DROP_WITH_CONTENT: FrozenSet[str] = frozenset({
    "script", "style", "iframe", "object", "embed", "applet",
    "form", "input", "button", "select", "textarea",
    "frame", "frameset", "noscript", "template", "meta", "link", "base",
})

_GLOBAL_ATTRIBUTES: FrozenSet[str] = frozenset({
    "class", "id", "title", "lang", "dir", "role", "aria-label", "aria-hidden",
})

# Tag → attributes allowed in addition to the global ones
ALLOWED_TAGS: Dict[str, FrozenSet[str]] = {
    "a": frozenset({"href", "rel", "rev", "name", "target", "download", "hreflang"}),
    "abbr": frozenset(),
    "address": frozenset(),
    "b": frozenset(),
    "bdo": frozenset(),
    "blockquote": frozenset({"cite"}),
    "br": frozenset(),
    "caption": frozenset({"align"}),
    "cite": frozenset(),
    "code": frozenset(),
    "dd": frozenset(),
    "del": frozenset({"datetime"}),
    "details": frozenset({"open"}),
    "dfn": frozenset(),
    "div": frozenset({"align"}),
    "dl": frozenset(),
    "dt": frozenset(),
    "em": frozenset(),
    "figcaption": frozenset(),
    "figure": frozenset(),
    "h1": frozenset({"align"}),
    "h2": frozenset({"align"}),
    "h3": frozenset({"align"}),
    "h4": frozenset({"align"}),
    "h5": frozenset({"align"}),
    "h6": frozenset({"align"}),
    "hr": frozenset(),
    "i": frozenset(),
    "img": frozenset({"alt", "src", "width", "height", "loading", "align"}),
    "ins": frozenset({"datetime", "cite"}),
    "kbd": frozenset(),
    "li": frozenset({"value"}),
    "mark": frozenset(),
    "ol": frozenset({"start", "type", "reversed"}),
    "p": frozenset({"align"}),
    "pre": frozenset(),
    "q": frozenset({"cite"}),
    "s": frozenset(),
    "small": frozenset(),
    "span": frozenset(),
    "strike": frozenset(),
    "strong": frozenset(),
    "sub": frozenset(),
    "summary": frozenset(),
    "sup": frozenset(),
    "table": frozenset({"align", "border", "cellpadding", "cellspacing", "summary"}),
    "tbody": frozenset(),
    "td": frozenset({"colspan", "rowspan", "headers", "align"}),
    "tfoot": frozenset(),
    "th": frozenset({"colspan", "rowspan", "headers", "scope", "align"}),
    "thead": frozenset(),
    "tr": frozenset({"align"}),
    "u": frozenset(),
    "ul": frozenset({"type"}),
    "var": frozenset(),
}

_URL_ATTRIBUTES: FrozenSet[str] = frozenset({"href", "src", "cite"})

ALLOWED_PROTOCOLS: FrozenSet[str] = frozenset({
    "http", "https", "ftp", "ftps", "mailto", "news", "irc", "tel", "sms",
})

_OCTETS = re.compile(r"%[a-fA-F0-9]{2}")
_WHITESPACE = re.compile(r"\s+")
_SCHEME = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")
_CONTROL_CHARS = re.compile(r"[\x00-\x20\x7f]+")


def _soup(value: str) -> BeautifulSoup:
    return BeautifulSoup(value, "html.parser")


def strip_all_tags(value: str) -> str:
    """Text content of an HTML fragment, script/style bodies excluded."""
    if "<" not in value:
        return value
    soup = _soup(value)
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    return soup.get_text()


def sanitize_text_field(value: Optional[str]) -> str:
    """
    Sanitizes a single-line plain-text value.

    sanitize_text_field("  <b>Dune</b>\\n  Messiah %0a ") → "Dune Messiah"
    """
    if value is None:
        return ""
    text = strip_all_tags(str(value))
    text = _OCTETS.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def is_safe_url(value: str) -> bool:
    """True for relative URLs and URLs using an allowed protocol."""
    # Browsers ignore control characters inside the scheme ("java\tscript:")
    candidate = _CONTROL_CHARS.sub("", value)
    match = _SCHEME.match(candidate)
    if match is None:
        return True
    return match.group(1).lower() in ALLOWED_PROTOCOLS


def kses_post(value: Optional[str]) -> str:
    """
    Sanitizes rich text against the allow-list.

    kses_post('<p onclick="x()">Hi<script>bad()</script></p>') → '<p>Hi</p>'
    """
    if not value:
        return ""
    soup = _soup(str(value))

    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        name = tag.name.lower()
        if name in _DROP_WITH_CONTENT:
            tag.decompose()
            continue
        allowed = ALLOWED_TAGS.get(name)
        if allowed is None:
            tag.unwrap()
            continue
        for attribute in list(tag.attrs):
            attr = attribute.lower()
            if attr not in allowed and attr not in _GLOBAL_ATTRIBUTES:
                del tag.attrs[attribute]
            elif attr in _URL_ATTRIBUTES and not is_safe_url(str(tag.attrs[attribute])):
                del tag.attrs[attribute]

    return str(soup)


def sanitize_key(value: Optional[str]) -> str:
    """sanitize_key(" Draft!") → "draft" """
    if value is None:
        return ""
    return re.sub(r"[^a-z0-9_\-]", "", str(value).lower())


def sanitize_title(value: Optional[str]) -> str:
    """
    Derives a URL slug from a title.

    sanitize_title("Crème Brûlée: A History") → "creme-brulee-a-history"
    """
    if not value:
        return ""
    text = strip_all_tags(str(value))
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"&[a-z0-9#]+;", "", text)
    text = re.sub(r"[^a-z0-9\s_-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip("-")[:190]
