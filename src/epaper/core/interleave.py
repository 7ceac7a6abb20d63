"""Even distribution of gallery media through a sequence of text blocks"""

import re

from epaper.core.models import MediaBlock, TextBlock
from epaper.crud.models import Article


PARAGRAPH_RE = re.compile(r"(?:\r?\n){2,}")
MIN_STRIDE = 2


def interleave(blocks: list, media: list) -> list:
    """Merge media into text blocks at a computed stride.

    stride = max(2, T // (M + 1)). A media item follows text block i when
    (i + 1) is a multiple of stride and i is not the last text block; media
    left over after the pass is appended in order, so nothing is dropped.
    """
    if not media:
        return list(blocks)

    stride = max(MIN_STRIDE, len(blocks) // (len(media) + 1))
    last = len(blocks) - 1
    result = []
    used = 0
    for i, block in enumerate(blocks):
        result.append(block)
        if used < len(media) and (i + 1) % stride == 0 and i < last:
            result.append(media[used])
            used += 1
    result.extend(media[used:])
    return result


def split_paragraphs(content: str) -> list[TextBlock]:
    """Split rich text on blank lines into TextBlocks, folding inner newlines."""
    paragraphs = (p.replace("\r\n", " ").replace("\n", " ").strip() for p in PARAGRAPH_RE.split(content or ""))
    return [TextBlock(text=p) for p in paragraphs if p]


def gallery_media(article: Article) -> list[MediaBlock]:
    """Pair gallery URIs with their positional credits; blank credits become None."""
    credits = article.gallery_credits or []
    media = []
    for i, uri in enumerate(article.gallery_images or []):
        if not uri:
            continue
        credit = credits[i] if i < len(credits) else None
        media.append(MediaBlock(uri=uri, credit=credit or None))
    return media


def reading_blocks(article: Article) -> list[TextBlock | MediaBlock]:
    """Reading-view body: paragraphs with the gallery spread evenly through them."""
    return interleave(split_paragraphs(article.content), gallery_media(article))
