"""
Post content helpers.

normalize_content() turns text pasted from a word processor into the block
markup stored on Post.content:

    >>> normalize_content("Intro line\\n\\n- first\\n- second")
    '<p>Intro line</p>\\n\\n<ul>\\n  <li>first</li>\\n  <li>second</li>\\n</ul>'

Content that already carries closing block tags is returned untouched, so
normalizing twice is the same as normalizing once.
"""

import math
import re
import unicodedata
from typing import List, Optional

BULLET_SYMBOLS = "•●○■▪▫➢➣➤➥►▶◆◇✓✔✗✘⚬⚫⚪▸▹◈◉◊◘◙◦◯⦿⦾"

BULLET_ITEM = re.compile(rf"^(?:[{BULLET_SYMBOLS}]|[-–—*+])\s+")
NUMBERED_ITEM = re.compile(r"^\d+[.)]\s+")

STRUCTURED_MARKERS = ("</p>", "</ul>", "</ol>")

WORDS_PER_MINUTE = 200

_TAG = re.compile(r"<[^>]+>")
_COMBINING_MARKS = re.compile(r"[\u0300-\u036f]")


def _paragraph(lines: List[str]) -> str:
    return f"<p>{'<br>'.join(lines)}</p>"


def _list_block(kind: str, items: List[str]) -> str:
    body = "\n".join(f"  <li>{item}</li>" for item in items)
    return f"<{kind}>\n{body}\n</{kind}>"


def normalize_content(text: Optional[str]) -> str:
    if not text:
        return ""

    if any(marker in text for marker in STRUCTURED_MARKERS):
        return text

    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")

    blocks: List[str] = []
    paragraph: List[str] = []
    items: List[str] = []
    list_kind: Optional[str] = None

    def flush_paragraph():
        if paragraph:
            blocks.append(_paragraph(paragraph))
            paragraph.clear()

    def flush_list():
        nonlocal list_kind
        if items and list_kind:
            blocks.append(_list_block(list_kind, items))
            items.clear()
        list_kind = None

    for line in lines:
        stripped = line.strip()
        bullet = BULLET_ITEM.match(stripped)
        numbered = NUMBERED_ITEM.match(stripped)

        if bullet or numbered:
            flush_paragraph()
            kind = "ol" if numbered else "ul"
            if list_kind and list_kind != kind:
                flush_list()
            list_kind = kind
            marker = numbered or bullet
            items.append(stripped[marker.end():])
        elif line == "":
            flush_list()
            flush_paragraph()
        elif stripped == "":
            # Whitespace-only: an empty line inside an open paragraph,
            # otherwise a paragraph break
            if paragraph:
                paragraph.append("")
            else:
                flush_list()
        else:
            flush_list()
            paragraph.append(line)

    flush_list()
    flush_paragraph()

    return "\n\n".join(blocks)


def slugify(text: str) -> str:
    """
    URL slug with accents folded: "Reforma Tributária 2025" -> "reforma-tributaria-2025".
    """
    folded = _COMBINING_MARKS.sub("", unicodedata.normalize("NFD", text.lower()))
    cleaned = re.sub(r"[^a-z0-9\s-]", "", folded).strip()
    return re.sub(r"-+", "-", re.sub(r"\s+", "-", cleaned))


def count_words(content: str) -> int:
    """Words in stored content, ignoring markup."""
    return len(_TAG.sub(" ", content or "").split())


def reading_time(word_count: int) -> int:
    """Minutes at 200 words per minute, never less than one."""
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))
