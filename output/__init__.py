"""MAPLEAD Output — Incremental CSV sinks and table export."""
from .csv_writer import CSVWriter, IncrementalCSVSink, ListingSink

__all__ = ["CSVWriter", "IncrementalCSVSink", "ListingSink"]
