# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Core package: configuration, logging, database and dependency wiring."""
