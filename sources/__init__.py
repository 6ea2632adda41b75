"""MAPLEAD Sources — Tabular input for the website email pass."""
from .csv_input import find_website_column, headers_with_emails, load_website_table

__all__ = ["find_website_column", "headers_with_emails", "load_website_table"]
