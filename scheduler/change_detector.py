"""
Change detection rules for monitored pages.

Two page kinds are supported:
- Announcement lists: `article` elements keyed by their id attribute
- Single-article pages: `.entry-content p` paragraphs keyed by their text

Each kind has an equality rule (is the page unchanged?) and a delta rule
(markup of what is new). The two equality rules differ in
strictness: announcements compare the ordered id sequence, paragraphs compare
text content regardless of order.
"""

from typing import List

import structlog

from watcher.document import Document, Item

logger = structlog.get_logger(__name__)

ARTICLE_SELECTOR = "article"
PARAGRAPH_SELECTOR = ".entry-content p"
HEADING_SELECTOR = ".entry-content h2"


def _article_ids(document: Document) -> List[str]:
    return [article.id for article in document.select(ARTICLE_SELECTOR)]


def _paragraphs(document: Document) -> List[Item]:
    return document.select(PARAGRAPH_SELECTOR)


def articles_unchanged(old: Document, new: Document) -> bool:
    """
    Compare announcement pages by their ordered article id sequences.

    Reordering counts as a change even when the set of ids is the same.
    """
    old_ids = _article_ids(old)
    new_ids = _article_ids(new)

    logger.debug("Comparing article ids", old_ids=old_ids, new_ids=new_ids)

    return old_ids == new_ids


def new_articles_markup(old: Document, new: Document, url: str = "") -> str:
    """
    Markup of every article in `new` whose id does not appear in `old`.

    Articles keep their order in `new` and are separated by a line break.
    Returns an empty string when the pages differ only by order.
    """
    old_ids = set(_article_ids(old))
    new_articles = [
        article.markup
        for article in new.select(ARTICLE_SELECTOR)
        if article.id not in old_ids
    ]
    return "\n".join(new_articles)


def paragraphs_unchanged(old: Document, new: Document) -> bool:
    """
    Compare article pages by paragraph text.

    Pages with different paragraph counts differ. With equal counts the page
    is unchanged when every new paragraph's text occurs somewhere among the
    old paragraphs. Only new-in-old containment is checked.
    """
    old_paragraphs = _paragraphs(old)
    new_paragraphs = _paragraphs(new)

    if len(old_paragraphs) != len(new_paragraphs):
        return False

    old_texts = {paragraph.text for paragraph in old_paragraphs}
    return all(paragraph.text in old_texts for paragraph in new_paragraphs)


def new_paragraphs_markup(old: Document, new: Document, url: str = "") -> str:
    """
    First heading of `new` linked to the page, followed by new paragraphs.

    The heading link and the first paragraph are concatenated directly; later
    paragraphs are separated by a line break.
    """
    heading = new.select_one(HEADING_SELECTOR)
    if heading is not None:
        heading_link = f'<a href="{url}">{heading.markup}</a>'
    else:
        logger.warning("Page has no heading to link", url=url, selector=HEADING_SELECTOR)
        heading_link = ""

    old_texts = {paragraph.text for paragraph in _paragraphs(old)}
    new_paragraphs = [
        paragraph.markup
        for paragraph in _paragraphs(new)
        if paragraph.text not in old_texts
    ]

    return heading_link + "\n".join(new_paragraphs)


def count_new_articles(old: Document, new: Document) -> int:
    old_ids = set(_article_ids(old))
    return sum(1 for article_id in _article_ids(new) if article_id not in old_ids)


def count_new_paragraphs(old: Document, new: Document) -> int:
    old_texts = {paragraph.text for paragraph in _paragraphs(old)}
    return sum(1 for paragraph in _paragraphs(new) if paragraph.text not in old_texts)
