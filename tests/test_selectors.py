"""
Tests for locator fallback chains.
Covers: extract_first ordering and error isolation, wait_for_any racing, clean_field.
Run with: python -m pytest tests/test_selectors.py -v
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adapters.selectors import clean_field, extract_first, query_first, wait_for_any
from tests.fakes import FakeElement, FakePage


# ──────────────────────────────────────────────────
#  extract_first
# ──────────────────────────────────────────────────

@pytest.mark.anyio
async def test_returns_kth_candidate_and_stops_there():
    page = FakePage(selectors={
        "a": None,
        "b": RuntimeError("detached"),
        "c": FakeElement(text="  "),
        "d": FakeElement(text="Muebles Toledo"),
        "e": FakeElement(text="never read"),
    })
    value = await extract_first(page, ["a", "b", "c", "d", "e"])
    assert value == "Muebles Toledo"
    assert page.queried == ["a", "b", "c", "d"]


@pytest.mark.anyio
async def test_result_independent_of_later_candidates():
    base = {"x": None, "y": FakeElement(text="Hit")}
    first = FakePage(selectors={**base, "z": FakeElement(text="Other")})
    second = FakePage(selectors={**base, "z": RuntimeError("boom")})
    assert await extract_first(first, ["x", "y", "z"]) == "Hit"
    assert await extract_first(second, ["x", "y", "z"]) == "Hit"


@pytest.mark.anyio
async def test_all_candidates_fail_returns_empty():
    page = FakePage(selectors={"a": RuntimeError("gone"), "b": FakeElement(error=RuntimeError("stale"))})
    assert await extract_first(page, ["a", "b", "c"]) == ""


@pytest.mark.anyio
async def test_attribute_read():
    page = FakePage(selectors={"a.site": FakeElement(text="Website", attrs={"href": "https://shop.es/"})})
    assert await extract_first(page, ["a.site"], attribute="href") == "https://shop.es/"


@pytest.mark.anyio
async def test_multiline_value_collapsed():
    page = FakePage(selectors={"h1": FakeElement(text="Calle Mayor 1\n45001 Toledo\r\n")})
    assert await extract_first(page, ["h1"]) == "Calle Mayor 1 45001 Toledo"


@pytest.mark.anyio
async def test_query_first_skips_errors():
    button = FakeElement(text="Accept all")
    page = FakePage(selectors={"bad": RuntimeError("x"), "ok": button})
    assert await query_first(page, ["missing", "bad", "ok"]) == ("ok", button)
    assert await query_first(page, ["missing"]) == (None, None)


# ──────────────────────────────────────────────────
#  wait_for_any
# ──────────────────────────────────────────────────

@pytest.mark.anyio
async def test_wait_for_any_first_to_appear_wins():
    page = FakePage(ready={"slow": 0.2, "fast": 0.0})
    assert await wait_for_any(page, ["slow", "fast"], 1000) == "fast"


@pytest.mark.anyio
async def test_wait_for_any_ignores_failing_locators():
    page = FakePage(ready={"late": 0.05})
    assert await wait_for_any(page, ["never", "late"], 1000) == "late"


@pytest.mark.anyio
async def test_wait_for_any_raises_when_nothing_appears():
    page = FakePage()
    with pytest.raises(TimeoutError):
        await wait_for_any(page, ["a", "b"], 50)


@pytest.mark.anyio
async def test_wait_for_any_needs_selectors():
    with pytest.raises(ValueError):
        await wait_for_any(FakePage(), [], 50)


def test_clean_field():
    assert clean_field(None) == ""
    assert clean_field("  a\nb  ") == "a b"
