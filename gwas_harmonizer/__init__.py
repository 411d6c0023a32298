"""
GWAS Summary Statistics Harmonizer.

Brings GWAS summary statistics from heterogeneous sources onto hg19/hg38
coordinates and the allele orientation of a dbSNP-derived reference catalog.
"""

__version__ = "1.0.0"
__author__ = "Data Tecnica International"
