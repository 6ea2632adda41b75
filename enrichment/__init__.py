"""MAPLEAD Enrichment — Website email discovery, ranking and the worker pool."""
from .email_cache import DomainCache
from .email_extractor import extract_and_rank, filter_emails, rank_emails
from .site_scraper import WebsiteEmailScraper
from .worker_pool import EmailWorkerPool, partition_round_robin

__all__ = [
    "DomainCache",
    "EmailWorkerPool",
    "WebsiteEmailScraper",
    "extract_and_rank",
    "filter_emails",
    "partition_round_robin",
    "rank_emails",
]
