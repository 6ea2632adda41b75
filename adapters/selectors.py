"""
MAPLEAD — Locator Fallback Chains
Resolve a logical field against an ordered list of candidate locators.
Map pages vary their markup across locales and experiments, so every read
degrades through the list instead of trusting a single selector.
"""

import asyncio
import logging
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


def clean_field(value: Optional[str]) -> str:
    """Collapse line breaks and surrounding whitespace so a value fits one CSV cell."""
    if not value:
        return ""
    return " ".join(value.replace("\r", "\n").split("\n")).strip()


async def query_first(page, candidates: Sequence[str]):
    """Return (selector, element) for the first candidate that matches, else (None, None)."""
    for selector in candidates:
        try:
            element = await page.query_selector(selector)
        except Exception:
            continue
        if element:
            return selector, element
    return None, None


async def extract_first(page, candidates: Sequence[str], attribute: Optional[str] = None) -> str:
    """
    Return the first non-empty value among `candidates`.

    Reads `attribute` when given, the element's text content otherwise.
    A candidate that is missing, throws, or yields an empty value is skipped;
    candidates after the first hit are never queried.
    """
    for selector in candidates:
        try:
            element = await page.query_selector(selector)
            if not element:
                continue
            if attribute:
                value = await element.get_attribute(attribute)
            else:
                value = await element.text_content()
        except Exception:
            continue
        value = clean_field(value)
        if value:
            return value
    return ""


async def wait_for_any(page, selectors: Sequence[str], timeout_ms: int) -> str:
    """
    Race one wait per selector; return the selector that appeared first.

    Raises the last wait error (usually a timeout) when none of them appear.
    """
    if not selectors:
        raise ValueError("wait_for_any needs at least one selector")

    tasks = {
        asyncio.ensure_future(page.wait_for_selector(sel, timeout=timeout_ms)): sel
        for sel in selectors
    }
    pending = set(tasks)
    last_error: Optional[BaseException] = None
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                error = task.exception()
                if error is None:
                    return tasks[task]
                last_error = error
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    raise last_error or TimeoutError(f"None of {len(selectors)} selectors appeared")
