"""
JellyWatch — jellyfish sighting aggregation and beach risk assessment.

Fuses citizen-science and biodiversity records from iNaturalist, GBIF and
OBIS around a coordinate into a five-level risk report.
"""

__version__ = "1.0.0"
