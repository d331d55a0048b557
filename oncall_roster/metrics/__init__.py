# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Metrics package: Prometheus metric objects."""
