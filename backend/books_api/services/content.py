"""
Books API — Content Rendering
==============================

What:  Display-side transformation of stored fields.
How:   `ContentRenderer` runs the stored body through an ordered chain of
       filters (lowest priority first, registration order on ties).
       The default chain wraps blank-line separated plain blocks in <p>.
Who:   Used by BookController when shaping responses. Never applied on write.

Adding a filter:
    renderer.add_filter(expand_embeds, priority=8)   # runs before autop (10)
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, List

logger = logging.getLogger(__name__)

ContentFilter = Callable[[str], str]

_BLOCK_TAGS = (
    "address|article|aside|blockquote|details|div|dl|fieldset|figcaption|figure|"
    "footer|form|h[1-6]|header|hr|li|main|nav|ol|p|pre|section|summary|table|ul"
)
_STARTS_WITH_BLOCK = re.compile(rf"^\s*</?(?:{_BLOCK_TAGS})[\s/>]", re.IGNORECASE)
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def autop(text: str) -> str:
    """
    Wraps plain-text blocks in paragraphs and turns single newlines into <br />.

    autop("One\\n\\nTwo\\nlines") → "<p>One</p>\\n<p>Two<br />\\nlines</p>"
    Blocks that already start with a block-level tag are left untouched.
    """
    if not text.strip():
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    blocks = [block.strip() for block in _PARAGRAPH_BREAK.split(text)]

    rendered = []
    for block in blocks:
        if not block:
            continue
        if _STARTS_WITH_BLOCK.match(block):
            rendered.append(block)
        else:
            rendered.append("<p>" + block.replace("\n", "<br />\n") + "</p>")
    return "\n".join(rendered)


@dataclass(frozen=True)
class _RegisteredFilter:
    priority: int
    sequence: int
    func: ContentFilter


class ContentRenderer:
    """Ordered filter chain applied to stored content on output."""

    DEFAULT_PRIORITY = 10

    def __init__(self, with_defaults: bool = True) -> None:
        self._filters: List[_RegisteredFilter] = []
        self._sequence = 0
        if with_defaults:
            self.add_filter(autop)

    def add_filter(self, func: ContentFilter, priority: int = DEFAULT_PRIORITY) -> None:
        self._sequence += 1
        self._filters.append(_RegisteredFilter(priority, self._sequence, func))
        self._filters.sort(key=lambda f: (f.priority, f.sequence))

    def remove_filter(self, func: ContentFilter) -> bool:
        before = len(self._filters)
        self._filters = [f for f in self._filters if f.func is not func]
        return len(self._filters) != before

    @property
    def filters(self) -> List[ContentFilter]:
        return [f.func for f in self._filters]

    def render(self, raw: str) -> str:
        content = raw or ""
        for registered in self._filters:
            content = registered.func(content)
        return content


def render_title(title: str, status: str) -> str:
    """Display title; private entities are labelled as such."""
    if status == "private":
        return f"Private: {title}"
    return title
