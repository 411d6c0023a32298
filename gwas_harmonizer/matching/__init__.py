"""Reference catalog index and join engine."""

from gwas_harmonizer.matching.join import deduplicate, match_reference, reconcile
from gwas_harmonizer.matching.reference import ReferenceIndex

__all__ = ["ReferenceIndex", "match_reference", "reconcile", "deduplicate"]
