"""Scan engine — repository scan lifecycle."""

from vulnguard.engines.scan.orchestrator import ScanAllSummary, ScanOrchestrator

__all__ = [
    "ScanAllSummary",
    "ScanOrchestrator",
]
