"""Spatial helpers: coordinates, great-circle distance, search areas."""
