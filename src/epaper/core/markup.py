"""HTML preview of a composed edition, rendered through a Jinja2 template"""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from epaper.core.models import DocumentModel


TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_markup(document: DocumentModel) -> str:
    """Render the document as printable HTML; each page is one div.page of A4 size."""
    template = _environment().get_template("newspaper.html")
    return template.render(doc=document, pages=document.pages)
