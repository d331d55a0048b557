# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Repository package: re-exports RosterRepository."""
from oncall_roster.repositories.roster_repository import RosterRepository

__all__ = ["RosterRepository"]
