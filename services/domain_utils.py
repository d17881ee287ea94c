from __future__ import annotations

import unicodedata
from typing import Optional
from urllib.parse import unquote, urlparse

import tldextract


# Bundled public-suffix snapshot only; never fetch the list over the network
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

# Consumer mailbox providers: an address here says nothing about the employer
GENERIC_EMAIL_DOMAINS = frozenset({
    "gmail.com",
    "googlemail.com",
    "outlook.com",
    "hotmail.com",
    "yahoo.com",
    "live.com",
    "icloud.com",
    "aol.com",
    "protonmail.com",
    "mail.com",
    "zoho.com",
    "yandex.com",
    "me.com",
    "mac.com",
    "msn.com",
    "fastmail.com",
    "proton.me",
    "tutanota.com",
    "hey.com",
    "pm.me",
    "duck.com",
    "qq.com",
    "163.com",
    "126.com",
    "sina.com",
    "sohu.com",
    "139.com",
    "189.com",
})

_EMPTY_URL_VALUES = {"", "n/a", "na", "no", "none", "null", "undefined", "-"}


def extract_apex_domain(url_or_domain: Optional[str]) -> Optional[str]:
    if not url_or_domain:
        return None
    text = str(url_or_domain).strip().lower()
    if not text.startswith("http://") and not text.startswith("https://"):
        text = f"http://{text}"
    ext = _EXTRACT(text)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return None


def infer_website_from_email(email: Optional[str]) -> Optional[str]:
    """Guess a company homepage from a work email address.

    Returns ``https://<domain>`` for any domain, or None when the address has
    no domain or the domain (or its registrable apex) is a generic mail provider.
    """
    if not email or "@" not in email:
        return None
    domain = email.rsplit("@", 1)[1].strip().lower()
    if not domain:
        return None
    if domain in GENERIC_EMAIL_DOMAINS or extract_apex_domain(domain) in GENERIC_EMAIL_DOMAINS:
        return None
    return f"https://{domain}"


def _canonical_profile_slug(slug: str) -> str:
    # Decode percent-encoding and normalize Unicode; canonicalize to lowercase
    slug = unquote(slug)
    slug = unicodedata.normalize("NFKC", slug).strip().lower()
    # Remove invisible characters occasionally present in exports
    return slug.replace("\u200b", "").replace("\u200c", "").replace("\u200d", "")


def normalize_linkedin_profile_url(value: Optional[str]) -> Optional[str]:
    """Turn a free-form LinkedIn cell into a profile URL.

    Accepts full URLs, ``in/<slug>`` paths and bare usernames. Placeholder
    answers such as "n/a" or "none" yield None. LinkedIn ``/in/`` URLs are
    canonicalized to ``https://linkedin.com/in/<slug>``; other URLs are kept
    as given.
    """
    if value is None:
        return None
    raw = str(value).strip()
    if raw.lower() in _EMPTY_URL_VALUES:
        return None

    low = raw.lower()
    if low.startswith("http"):
        u = urlparse(raw)
        host = (u.netloc or "").lower().replace("www.", "")
        parts = [p for p in (u.path or "").split("/") if p]
        # Keep only /in/{slug}; drop trailing locale/segments (e.g. /de, /en)
        if host.endswith("linkedin.com") and len(parts) >= 2 and parts[0] == "in":
            return f"https://linkedin.com/in/{_canonical_profile_slug(parts[1])}"
        return raw

    if low.startswith("/in/") or low.startswith("in/"):
        parts = [p for p in low.split("/") if p]
        if len(parts) >= 2:
            return f"https://linkedin.com/in/{_canonical_profile_slug(parts[1])}"
        return None

    if "/" not in raw:
        return f"https://linkedin.com/in/{_canonical_profile_slug(raw)}"

    return raw
