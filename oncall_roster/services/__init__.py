# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Service package: business logic."""
