# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""On-call roster scheduling and resolution service."""
