# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Models package: domain data structures."""
