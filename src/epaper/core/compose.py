"""Layout composition: selected articles -> fixed-format multi-page DocumentModel"""

from datetime import date

from epaper.core.errors import CompositionError
from epaper.core.interleave import gallery_media, interleave, split_paragraphs
from epaper.core.models import (
    AdSpaceBlock, ArticleCard, BrandingSettings, CategoryGridBlock, CategoryHeaderBlock,
    DocumentModel, FooterBlock, HeadlineItem, HeadlineStripBlock, ImageSlot,
    LeadArticleBlock, MastheadBlock, Page, SecondaryGridBlock, SidebarBlock, TextBlock,
)
from epaper.core.utils.locale import format_date, label, page_label
from epaper.core.utils.text import strip_html, truncate
from epaper.crud.models import Article, Category, SiteSettings


# Character budgets per slot
HEADLINE_CHARS       = 50
FRONT_LEAD_CHARS     = 800
FRONT_SECONDARY_CHARS = 150
SIDEBAR_CHARS        = 80
CATEGORY_LEAD_CHARS  = 600
CATEGORY_GRID_CHARS  = 100
ARTICLE_BODY_CHARS   = 3000

HEADLINE_COUNT     = 4
SECONDARY_SLICE    = slice(1, 4)
SIDEBAR_SLICE      = slice(4, 9)
CATEGORY_PAGE_SIZE = 8      # lead + 7 grid items
ARTICLE_MAX_MEDIA  = 2


def branding_from(row: SiteSettings | None, locale: str) -> BrandingSettings:
    """BrandingSettings from the settings row, falling back to the locale's site name."""
    if row is None:
        return BrandingSettings(site_name=label("site_name", locale))
    return BrandingSettings(
        site_name=row.site_name or label("site_name", locale),
        logo=row.logo or None,
        description=row.site_description or None,
    )


def _require(article: Article) -> Article:
    if not article.id or not (article.title or "").strip():
        raise CompositionError(f"Article {article.id!r} is missing an id or title")
    return article


def _plain(article: Article, budget: int) -> str:
    """Body text (content, else excerpt) stripped of markup and cut to budget."""
    return truncate(strip_html(article.content or article.excerpt or ""), budget)


def _image(article: Article, placeholder: str) -> ImageSlot:
    return ImageSlot(uri=article.featured_image or None, credit=article.image_credit or None, placeholder=placeholder)


def _card(article: Article, budget: int, placeholder: str, with_image: bool = True) -> ArticleCard:
    return ArticleCard(
        article_id=article.id,
        title=article.title,
        text=_plain(article, budget),
        image=_image(article, placeholder) if with_image else None,
    )


def _footer(branding: BrandingSettings, number: int, date_label: str, locale: str) -> FooterBlock:
    return FooterBlock(site_name=branding.site_name, page_label=page_label(number, locale), date_label=date_label)


def _front_page(
    articles: list[Article],
    names: dict[str, str],
    branding: BrandingSettings,
    date_label: str,
    locale: str,
    ) -> Page:
    no_image = label("no_image", locale)
    headlines = [
        HeadlineItem(
            category=names.get(a.category_ids[0] if a.category_ids else "", label("news", locale)),
            title=truncate(a.title, HEADLINE_CHARS),
        )
        for a in articles[:HEADLINE_COUNT]
    ]
    blocks = [
        MastheadBlock(
            site_name=branding.site_name,
            logo=branding.logo,
            description=branding.description,
            date_label=date_label,
            section_label=label("rights", locale),
            page_label=page_label(1, locale),
        ),
        HeadlineStripBlock(items=headlines),
        LeadArticleBlock(card=_card(articles[0], FRONT_LEAD_CHARS, no_image)),
        SecondaryGridBlock(items=[_card(a, FRONT_SECONDARY_CHARS, no_image) for a in articles[SECONDARY_SLICE]]),
        SidebarBlock(
            title=label("more_news", locale),
            items=[_card(a, SIDEBAR_CHARS, no_image, with_image=False) for a in articles[SIDEBAR_SLICE]],
        ),
        AdSpaceBlock(label=label("ad_space", locale)),
        _footer(branding, 1, date_label, locale),
    ]
    return Page(kind="front", number=1, title=branding.site_name, blocks=blocks)


def _category_page(
    number: int,
    name: str,
    articles: list[Article],
    branding: BrandingSettings,
    date_label: str,
    locale: str,
    ) -> Page:
    page_articles = articles[:CATEGORY_PAGE_SIZE]
    blocks = [
        MastheadBlock(
            site_name=branding.site_name,
            date_label=date_label,
            section_label=name,
            page_label=page_label(number, locale),
            compact=True,
        ),
        CategoryHeaderBlock(name=name),
        LeadArticleBlock(card=_card(page_articles[0], CATEGORY_LEAD_CHARS, label("no_image", locale))),
        CategoryGridBlock(items=[_card(a, CATEGORY_GRID_CHARS, label("image", locale)) for a in page_articles[1:]]),
        AdSpaceBlock(label=label("ad_space", locale)),
        _footer(branding, number, date_label, locale),
    ]
    return Page(kind="category", number=number, title=name, blocks=blocks)


def compose(
    articles: list[Article],
    by_category: dict[str, list[Article]],
    categories: list[Category],
    settings: BrandingSettings,
    day: date,
    locale: str = "bn",
    max_category_pages: int = 4,
    ) -> DocumentModel:
    """Build the edition: one front page, then one page per category group.

    Category pages follow by_category's iteration order (first-seen order from
    aggregation) and stop after max_category_pages. Pure: no I/O, no clock.
    Raises CompositionError on an empty selection or an article without id/title.
    """
    if not articles:
        raise CompositionError("Cannot compose an edition without articles")
    for article in articles:
        _require(article)

    names = {c.id: c.name for c in categories}
    date_label = format_date(day, locale)
    pages = [_front_page(articles, names, settings, date_label, locale)]

    for cat_id, group in list(by_category.items())[:max_category_pages]:
        if not group:
            continue
        for article in group:
            _require(article)
        name = names.get(cat_id, label("misc_news", locale))
        pages.append(_category_page(len(pages) + 1, name, group, settings, date_label, locale))

    return DocumentModel(
        day=day,
        date_label=date_label,
        site_name=settings.site_name,
        locale=locale,
        pages=pages,
    )


def _article_body(article: Article) -> list:
    """Plain-text paragraphs within the page budget, with up to two gallery images spread through."""
    paragraphs, remaining = [], ARTICLE_BODY_CHARS
    for block in split_paragraphs(article.content):
        text = strip_html(block.text)
        if not text:
            continue
        if len(text) >= remaining:
            paragraphs.append(TextBlock(text=truncate(text, remaining)))
            break
        paragraphs.append(TextBlock(text=text))
        remaining -= len(text)
    return interleave(paragraphs, gallery_media(article)[:ARTICLE_MAX_MEDIA])


def compose_article(
    article: Article,
    category_name: str | None,
    settings: BrandingSettings,
    locale: str = "bn",
    ) -> DocumentModel:
    """Single-article printable page: masthead, headline with lead image, interleaved body."""
    _require(article)
    day = article.publish_date.date() if article.publish_date else None
    if day is None:
        raise CompositionError(f"Article {article.id!r} has no publish date")
    date_label = format_date(day, locale)
    lead = ArticleCard(
        article_id=article.id,
        title=article.title,
        text=strip_html(article.excerpt or ""),
        image=_image(article, label("no_image", locale)),
    )
    blocks = [
        MastheadBlock(
            site_name=settings.site_name,
            logo=settings.logo,
            description=settings.description,
            date_label=date_label,
            section_label=category_name or label("news", locale),
            page_label=page_label(1, locale),
            compact=True,
        ),
        LeadArticleBlock(card=lead),
        *_article_body(article),
        _footer(settings, 1, date_label, locale),
    ]
    page = Page(kind="article", number=1, title=article.title, blocks=blocks)
    return DocumentModel(day=day, date_label=date_label, site_name=settings.site_name, locale=locale, pages=[page])
