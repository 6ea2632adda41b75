"""
MAPLEAD — Email Extraction & Ranking
Pulls candidate addresses out of a rendered page, drops noise and role
inboxes, and ranks what is left by how likely it reaches a person at the
site's own organization.

Cheap sources first: mailto links, then visible text, and the raw HTML
only when those two produced fewer than two candidates.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse


EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_STRICT_EMAIL_RE = re.compile(r"^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$")

# Substrings that mark placeholder, tooling, asset or role-account addresses
BLOCKED_SUBSTRINGS = [
    "@example.com", "noreply@", "no-reply@", "donotreply@",
    "sentry.io", "wixpress.com", ".png", ".jpg", ".jpeg", ".gif", ".svg",
    "info@", "sales@", "support@", "hello@", "contact@",
    "admin@", "webmaster@", "customerservice@", "service@", "help@",
    "notifications@", "alerts@", "newsletter@", "signup@", "mail@",
]

# Shapes left behind by URL encoding, asset filenames and JS templating
_INVALID_EMAIL_PATTERNS = [
    re.compile(r"%[0-9a-f]{2}", re.IGNORECASE),
    re.compile(r"\.svg$"),
    re.compile(r"icon"),
    re.compile(r"image"),
    re.compile(r"^undefined$"),
]
_INVALID_LOCAL_PATTERNS = [
    re.compile(r"^[0-9]+$"),
    re.compile(r"^undefined$"),
]

GENERIC_LOCAL_PARTS = {"info", "contact", "hello", "support", "sales", "admin"}

_PERSONAL_LOCAL_RE = re.compile(r"^[a-z](\.[a-z]+)?$")

# Minimum candidates before falling back to HTML / a contact page
THIN_YIELD = 2

SOURCE_MAILTO = "mailto"
SOURCE_TEXT = "text"
SOURCE_HTML = "html"


@dataclass
class EmailCandidate:
    email: str
    source: str
    score: int = 0


# ── Filtering ────────────────────────────────────

def is_blocked(email: str) -> bool:
    """True for noise, role accounts and malformed shapes. Expects lowercase."""
    if any(blocked in email for blocked in BLOCKED_SUBSTRINGS):
        return True
    if any(p.search(email) for p in _INVALID_EMAIL_PATTERNS):
        return True
    local = email.split("@", 1)[0]
    if any(p.search(local) for p in _INVALID_LOCAL_PATTERNS):
        return True
    return not _STRICT_EMAIL_RE.match(email)


def filter_emails(candidates: Iterable[str]) -> List[str]:
    """Case-fold, drop blocked addresses and de-duplicate, keeping first-seen order."""
    seen = set()
    kept = []
    for raw in candidates:
        email = (raw or "").strip().lower()
        if not email or email in seen or is_blocked(email):
            continue
        seen.add(email)
        kept.append(email)
    return kept


def find_emails(text: str) -> List[str]:
    """Every valid, non-blocked address appearing in `text`."""
    if not text:
        return []
    return filter_emails(EMAIL_RE.findall(text))


def parse_mailto(href: str) -> str:
    """`mailto:Jane@x.com?subject=Hi` → `jane@x.com`."""
    if not href:
        return ""
    value = re.sub(r"^mailto:", "", href.strip(), flags=re.IGNORECASE)
    return value.split("?", 1)[0].strip().lower()


def collect_candidates(page_text: str, page_html: str, mailto_hrefs: Sequence[str]) -> List[EmailCandidate]:
    """Mailto links, then visible text, then raw HTML only if the yield is still thin."""
    candidates: List[EmailCandidate] = []
    seen = set()

    def _add(emails: Iterable[str], source: str):
        for email in emails:
            if email not in seen:
                seen.add(email)
                candidates.append(EmailCandidate(email=email, source=source))

    mailto = []
    for href in mailto_hrefs or []:
        mailto.extend(EMAIL_RE.findall(parse_mailto(href)))
    _add(filter_emails(mailto), SOURCE_MAILTO)
    _add(find_emails(page_text), SOURCE_TEXT)

    if len(candidates) < THIN_YIELD:
        _add(find_emails(page_html), SOURCE_HTML)

    return candidates


# ── Ranking ──────────────────────────────────────

def site_domain(url: str) -> str:
    """Bare host of a site URL (scheme optional), without a leading www."""
    if not url:
        return ""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        host = url.split("://", 1)[-1].split("/", 1)[0]
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def score_email(email: str, domain: str) -> int:
    """
    +100 same organization (email domain contains the site domain)
    +50  `j` / `j.smith` style local part
    +30  any dot in the local part
    -20  generic role word
    """
    local, _, email_domain = email.partition("@")
    score = 0
    if domain and domain in email_domain:
        score += 100
    if _PERSONAL_LOCAL_RE.match(local):
        score += 50
    if "." in local:
        score += 30
    if local in GENERIC_LOCAL_PARTS:
        score -= 20
    return score


def rank_emails(emails: Sequence[str], target_url: str, max_results: int = 0) -> List[str]:
    """Highest score first; equal scores keep discovery order. 0 = no cap."""
    domain = site_domain(target_url)
    ranked = sorted(emails, key=lambda e: -score_email(e, domain))
    return ranked[:max_results] if max_results > 0 else ranked


def extract_and_rank(
    page_text: str,
    page_html: str,
    mailto_hrefs: Sequence[str],
    target_url: str,
    max_results: int = 0,
) -> List[str]:
    """Candidate generation, filtering and ranking for a single page."""
    candidates = collect_candidates(page_text, page_html, mailto_hrefs)
    return rank_emails([c.email for c in candidates], target_url, max_results)


# ── Contact page lookup ──────────────────────────

def find_contact_link(
    anchors: Sequence[Tuple[str, str]],
    base_url: str,
    keywords: Sequence[str],
) -> Optional[str]:
    """
    First same-site http(s) link whose text or href mentions a keyword.
    `anchors` is a sequence of (text, href) pairs in document order.
    """
    base_host = site_domain(base_url)
    for text, href in anchors:
        if not href:
            continue
        full = urljoin(base_url, href)
        if not full.startswith(("http://", "https://")):
            continue
        if site_domain(full) != base_host:
            continue
        text_l = (text or "").lower()
        href_l = full.lower()
        if any(kw in text_l or kw in href_l for kw in keywords):
            return full
    return None
