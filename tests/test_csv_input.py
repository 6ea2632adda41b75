"""
Tests for the website table input and result merge.
Covers: website column detection, Emails column placement, limit tail,
empty-row removal, unresolved URLs.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sources.csv_input import find_website_column, headers_with_emails, load_website_table
from website_crawl import apply_results


def test_website_column_detection():
    assert find_website_column(["Name", "Category", "Website", "Url"]) == "Website"
    assert find_website_column(["Name", "Site URL"]) == "Site URL"
    assert find_website_column(["Name", "Phone"]) == "Website"


def test_emails_column_after_website():
    assert headers_with_emails(["Name", "Website", "Phone"], "Website") == ["Name", "Website", "Emails", "Phone"]
    assert headers_with_emails(["Name", "Phone"], "Website") == ["Name", "Phone", "Emails"]


def test_load_table(tmp_path):
    path = tmp_path / "in.csv"
    path.write_text('"Name","Website"\n"A","http://a.com"\n"B",""\n', encoding="utf-8")
    headers, rows = load_website_table(path)
    assert headers == ["Name", "Website"]
    assert rows == [{"Name": "A", "Website": "http://a.com"}, {"Name": "B", "Website": ""}]


def test_load_missing_table(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_website_table(tmp_path / "nope.csv")


def _rows():
    return [
        {"Name": "A", "Website": "http://a.com"},
        {"Name": "A2", "Website": "http://a.com/contact"},
        {"Name": "C", "Website": ""},
        {"Name": "D", "Website": "http://d.com"},
    ]


def test_apply_results_drops_na_rows():
    results = {"http://a.com": "ana@a.com", "http://a.com/contact": "ana@a.com"}
    headers, rows = apply_results(["Name", "Website"], _rows(), results)
    assert headers == ["Name", "Website", "Emails"]
    assert [r["Name"] for r in rows] == ["A", "A2"]
    assert all(r["Emails"] == "ana@a.com" for r in rows)


def test_apply_results_keep_empty_marks_unresolved_na():
    results = {"http://a.com": "ana@a.com"}
    _, rows = apply_results(["Name", "Website"], _rows(), results, remove_rows_without_emails=False)
    assert [r["Emails"] for r in rows] == ["ana@a.com", "NA", "NA", "NA"]


def test_apply_results_rows_past_limit_untouched():
    results = {"http://a.com": "ana@a.com"}
    _, rows = apply_results(["Name", "Website"], _rows(), results, limit=2)
    assert [r["Name"] for r in rows] == ["A", "C", "D"]
    assert "Emails" not in rows[1]
