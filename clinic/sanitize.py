"""bleach wrappers for user supplied text and administrator rich text."""
from __future__ import annotations

import bleach
from django.conf import settings


def clean_text(value: str | None) -> str:
    """Strip every tag from a plain text field."""
    return bleach.clean((value or '').strip(), tags=[], strip=True)


def clean_html(value: str | None) -> str:
    """Keep the formatting tags allowed in blog posts and legal pages."""
    return bleach.clean(
        value or '',
        tags=settings.RICH_TEXT_ALLOWED_TAGS,
        attributes=settings.RICH_TEXT_ALLOWED_ATTRIBUTES,
        strip=True,
    )
