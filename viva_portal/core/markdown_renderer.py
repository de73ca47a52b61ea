"""Markdown rendering for viva question text.

Faculty write questions in markdown, optionally with ``$...$`` math. The server
renders them to HTML fragments and the viva page typesets math with MathJax.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html import escape

from markdown_it import MarkdownIt


@dataclass(slots=True)
class QuestionRenderer:
    """Converts question markdown into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_option(self, option_text: str) -> str:
        """Render an option inline, without the surrounding paragraph."""
        return self._markdown.renderInline(option_text.strip()) or escape(option_text)


renderer = QuestionRenderer()
# MarkdownIt is safe for concurrent read-only renders, so FastAPI worker
# threads share this instance.
