"""
Parsed page documents.

A Document wraps a BeautifulSoup tree behind a narrow interface: select items
by CSS selector and render markup. Change detection only ever sees Items, so it
can be exercised against hand-written HTML fixtures.
"""

from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ParseFailure

PARSER = "html.parser"


class Item(BaseModel):
    """One selected element of a page."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Element id attribute, empty when missing")
    text: str = Field(default="", description="Full text content, not stripped")
    markup: str = Field(..., description="Serialized outer HTML")

    @classmethod
    def from_tag(cls, tag: Tag) -> "Item":
        return cls(
            id=tag.get("id") or "",
            text=tag.get_text(),
            markup=str(tag),
        )


class Document:
    """Immutable view over a parsed HTML page."""

    def __init__(self, soup: BeautifulSoup):
        self._soup = soup

    @classmethod
    def from_html(cls, html: str) -> "Document":
        """
        Parse raw HTML into a document.

        Raises:
            ParseFailure: If the markup is not a string or cannot be parsed
        """
        if not isinstance(html, (str, bytes)):
            raise ParseFailure(f"Expected HTML text, got {type(html).__name__}")
        try:
            return cls(BeautifulSoup(html, PARSER))
        except Exception as e:
            raise ParseFailure(f"Failed to parse HTML: {e}") from e

    def select(self, selector: str) -> List[Item]:
        """All elements matching a CSS selector, in document order."""
        return [Item.from_tag(tag) for tag in self._soup.select(selector)]

    def select_one(self, selector: str) -> Optional[Item]:
        tag = self._soup.select_one(selector)
        return Item.from_tag(tag) if tag is not None else None

    def outer_html(self) -> str:
        """Serialized markup of the root element, as persisted in the store."""
        root = self._soup.html
        return str(root if root is not None else self._soup)

    def __repr__(self) -> str:
        return f"Document({len(self.outer_html())} bytes)"
