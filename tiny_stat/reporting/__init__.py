"""
Presentation of accumulator summaries.

Only the text formatter is imported here; the PNG renderer in
``tiny_stat.reporting.plot`` pulls in matplotlib and is imported on demand.
"""

from tiny_stat.reporting.text import SUMMARY_QUANTILES, format_number, format_summary

__all__ = ["SUMMARY_QUANTILES", "format_number", "format_summary"]
