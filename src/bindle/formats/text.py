# ABOUTME: Converts EPUB chapter markup into plain text for preview and export.
# ABOUTME: Parses with BeautifulSoup; identical input always yields identical output.

import re

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, ProcessingInstruction

_DROPPED_TAGS = ["script", "style", "head", "title"]
_BLOCK_TAGS = ["p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr", "blockquote"]
_NON_TEXT_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)
_INLINE_SPACE_RE = re.compile(r"[ \t\r\f\v\xa0]+")


def strip_html(markup: str) -> str:
    """Strip markup and return readable plain text.

    Script, style, and head elements are dropped with their content, along
    with comments and processing instructions. Block elements and line
    breaks end a line, entities are decoded, and non-blank lines are joined
    with one newline.

    Args:
        markup: HTML or XHTML source.

    Returns:
        Plain text with no leading or trailing blank lines.
    """
    if not markup:
        return ""

    soup = BeautifulSoup(markup, "html.parser")

    for tag in soup(_DROPPED_TAGS):
        # A title inside a dropped head is already gone.
        if not tag.decomposed:
            tag.decompose()
    for node in soup.find_all(string=lambda s: isinstance(s, _NON_TEXT_STRINGS)):
        node.extract()

    for br in soup("br"):
        br.replace_with("\n")
    for block in soup(_BLOCK_TAGS):
        block.append("\n")

    lines = (_INLINE_SPACE_RE.sub(" ", line).strip() for line in soup.get_text().split("\n"))
    return "\n".join(line for line in lines if line)
