"""Report access for trivyglass.

Submodules:
    projection -- Printer-column JSON-path projection of instances.
    service    -- ReportService, the cached, cluster-aware read facade.
"""

from trivyglass.reports.service import ReportService

__all__ = ["ReportService"]
