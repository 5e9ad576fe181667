from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal

from .url_sync import set_page

ELLIPSIS: Final = "ellipsis"
MAX_VISIBLE_PAGES: Final = 5

PageItem = int | Literal["ellipsis"]


@dataclass(frozen=True, slots=True)
class PageLink:
    label: str
    page: int | None
    href: str | None
    active: bool = False
    disabled: bool = False


def page_numbers(current_page: int, total_pages: int) -> list[PageItem]:
    """Page buttons for a fixed-width control: first, last, and current +/- 1."""

    if total_pages <= MAX_VISIBLE_PAGES:
        return list(range(1, total_pages + 1))
    pages: list[PageItem] = [1]
    if current_page > 3:
        pages.append(ELLIPSIS)
    start = max(2, current_page - 1)
    end = min(total_pages - 1, current_page + 1)
    pages.extend(range(start, end + 1))
    if current_page < total_pages - 2:
        pages.append(ELLIPSIS)
    pages.append(total_pages)
    return pages


def page_link(query: str | None, page: int) -> str:
    return f"?{set_page(query, page)}"


def pagination_items(query: str | None, current_page: int, total_pages: int) -> list[PageLink]:
    if total_pages <= 1:
        return []
    has_previous = current_page > 1
    has_next = current_page < total_pages
    items = [
        PageLink(
            label="Previous",
            page=current_page - 1 if has_previous else None,
            href=page_link(query, current_page - 1) if has_previous else None,
            disabled=not has_previous,
        )
    ]
    for entry in page_numbers(current_page, total_pages):
        if entry == ELLIPSIS:
            items.append(PageLink(label="...", page=None, href=None, disabled=True))
            continue
        items.append(
            PageLink(
                label=str(entry),
                page=entry,
                href=page_link(query, entry),
                active=entry == current_page,
            )
        )
    items.append(
        PageLink(
            label="Next",
            page=current_page + 1 if has_next else None,
            href=page_link(query, current_page + 1) if has_next else None,
            disabled=not has_next,
        )
    )
    return items
