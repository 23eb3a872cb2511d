"""Conversion pipeline: ordered, independently failable steps on a checkout."""
