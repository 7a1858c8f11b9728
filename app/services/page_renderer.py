"""
Minimal HTML rendering for App Proxy pages.

Pure functions of page + store data. Everything interpolated is escaped;
unknown block types render as empty placeholders.
"""
from __future__ import annotations

from html import escape
from typing import Any

from app.models.page import Page
from app.models.store import Store


def _text(config: dict[str, Any], key: str, default: str = "") -> str:
    return escape(str(config.get(key, default) or ""), quote=True)


def _order(block: dict[str, Any]) -> float:
    order = block.get("order")
    # bool is an int subclass; treat it like any other junk value
    if isinstance(order, (int, float)) and not isinstance(order, bool):
        return order
    return 0


def render_block(block: dict[str, Any]) -> str:
    block_type = block.get("type")
    config = block.get("config")
    if not isinstance(config, dict):
        config = {}
    block_id = escape(str(block.get("id", "")), quote=True)

    if block_type == "hero-banner":
        return (
            f'<section class="lp-hero" data-block-id="{block_id}">'
            f"<h1>{_text(config, 'title')}</h1>"
            f"<p>{_text(config, 'subtitle')}</p>"
            f'<a class="lp-button" href="{_text(config, "buttonUrl", "#")}">{_text(config, "buttonText")}</a>'
            "</section>"
        )
    if block_type == "text-block":
        return f'<div class="lp-text" data-block-id="{block_id}">{_text(config, "content")}</div>'
    if block_type == "image-block":
        return (
            f'<img class="lp-image" data-block-id="{block_id}" '
            f'src="{_text(config, "src")}" alt="{_text(config, "alt", "Image")}">'
        )
    if block_type == "button-block":
        return (
            f'<a class="lp-button" data-block-id="{block_id}" href="{_text(config, "url", "#")}">'
            f"{_text(config, 'text', 'Click Here')}</a>"
        )
    return f'<div class="lp-block" data-block-id="{block_id}" data-block-type="{escape(str(block_type), quote=True)}"></div>'


def render_page(page: Page, store: Store) -> str:
    blocks = sorted((b for b in page.blocks or [] if isinstance(b, dict)), key=_order)
    robots = "" if page.allow_indexing else '<meta name="robots" content="noindex,nofollow">'
    body = "\n".join(render_block(b) for b in blocks)

    return (
        "<!DOCTYPE html>\n"
        '<html lang="en"><head><meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1">'
        f"{robots}<title>{escape(page.title)}</title></head>\n"
        f'<body data-page-id="{page.id}" data-shop="{escape(store.shopify_domain, quote=True)}">\n'
        f"{body}\n</body></html>"
    )


def render_message_page(title: str, message: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        f'<html lang="en"><head><meta charset="utf-8"><title>{escape(title)}</title></head>'
        f"<body><h1>{escape(title)}</h1><p>{escape(message)}</p></body></html>"
    )


def render_404_page() -> str:
    return render_message_page("Page not found", "The page you are looking for does not exist.")
