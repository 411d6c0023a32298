"""Run log and console summary writers."""

from gwas_harmonizer.writers.log import print_summary, write_log_file

__all__ = ["print_summary", "write_log_file"]
