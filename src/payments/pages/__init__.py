"""Page registry — maps a callback outcome to its redirect page.

Each page knows where the browser goes next and which query parameters it
carries. ``render_page`` wraps the result in the shared HTML layout.
"""

from payments.pages.cancelled import CancelledPage
from payments.pages.failed import FailedPage
from payments.pages.layout import REDIRECT_DELAY_MS, render_redirect
from payments.pages.success import SuccessPage

PAGE_REGISTRY: dict[str, type] = {
    SuccessPage.page: SuccessPage,
    FailedPage.page: FailedPage,
    CancelledPage.page: CancelledPage,
}


def get_page(page: str):
    """Look up a page class by outcome name."""
    page_cls = PAGE_REGISTRY.get(page)
    if page_cls is None:
        raise ValueError(f"No page registered for outcome: {page}")
    return page_cls


def render_page(page: str, context: dict, site_url: str) -> str:
    """Full HTML for the page that forwards the payer to the outcome screen."""
    content = get_page(page).render(context)
    return render_redirect(content, site_url)


__all__ = ["PAGE_REGISTRY", "REDIRECT_DELAY_MS", "get_page", "render_page"]
