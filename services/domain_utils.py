from __future__ import annotations

from typing import Optional
from urllib.parse import unquote, urlparse
import unicodedata


_INVISIBLE = ("\u200b", "\u200c", "\u200d", "\ufeff")


def normalize_public_identifier(value: Optional[str]) -> Optional[str]:
    """Canonical form of a profile's /in/{slug} identifier, or None if blank."""
    if value is None:
        return None
    slug = unquote(str(value)).strip().strip('/')
    # Normalize Unicode; canonicalize to lowercase
    slug = unicodedata.normalize('NFKC', slug).strip().lower()
    # Remove invisible characters occasionally present
    for ch in _INVISIBLE:
        slug = slug.replace(ch, '')
    return slug or None


def public_identifier_from_url(url: Optional[str]) -> Optional[str]:
    """Extract the /in/{slug} part of a LinkedIn profile URL."""
    if not url:
        return None
    text = str(url).strip()
    if not text.startswith(('http://', 'https://')):
        text = f"https://{text}"
    u = urlparse(text)
    host = (u.netloc or '').lower()
    if not host.endswith('linkedin.com'):
        return None
    # Keep only /in/{slug} and drop trailing locale/segments (e.g., /de, /en)
    parts = [p for p in (u.path or '').split('/') if p]
    if len(parts) >= 2 and parts[0] == 'in':
        return normalize_public_identifier(parts[1])
    return None


def profile_url_for(public_identifier: str) -> str:
    return f"https://www.linkedin.com/in/{public_identifier}/"
