"""Reporting utilities for backend-generated documents."""

from backend.reporting.monthly_report import (
    MonthlyReportData,
    ReportCategoryRow,
    ReportTransactionRow,
    build_monthly_report_data,
    generate_monthly_report_pdf,
)

__all__ = [
    "MonthlyReportData",
    "ReportCategoryRow",
    "ReportTransactionRow",
    "build_monthly_report_data",
    "generate_monthly_report_pdf",
]
