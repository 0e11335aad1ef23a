"""Detector package. Imports network strategies to trigger @register_network decorators."""

from linkguard.detectors import networks  # noqa: F401
