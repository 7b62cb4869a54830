"""Assessment engine — AI repository analysis and vulnerability scan."""

from vulnguard.engines.assessment.client import (
    AnalysisFailure,
    AssessmentClient,
    RepositoryDetails,
    ScanFailure,
    ScanResult,
    parse_repository_details,
    parse_scan_status,
)

__all__ = [
    "AnalysisFailure",
    "AssessmentClient",
    "RepositoryDetails",
    "ScanFailure",
    "ScanResult",
    "parse_repository_details",
    "parse_scan_status",
]
