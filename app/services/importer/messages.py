from typing import List

from app.core.result import Ok, Result
from app.schemas.imports import (
    DuplicateOrderCodes,
    HeaderIssue,
    ImportIssue,
    ImportReport,
    IncompleteCorrections,
    MissingProducts,
    NeedsCorrection,
    NoRows,
    Notification,
    RowError,
    UnreadableFile,
)

UNIQUE_FOOTER = "Order ID must be unique. Please update the values in your spreadsheet and upload again."
HEADER_FOOTER = "Please rename the columns in your spreadsheet and upload again."


def format_row_error(error: RowError) -> str:
    return f"Row {error.row_number} ({error.order_code} - {error.customer_name}): {error.error}"


def report_notification(report: ImportReport) -> Notification:
    summary = "\n".join(format_row_error(error) for error in report.errors)
    if report.success_count > 0 and report.failed_count == 0:
        return Notification(level="success", message=f"Successfully added {report.success_count} order(s)!")
    if report.success_count > 0:
        return Notification(
            level="error",
            message=(
                f"Successfully added {report.success_count} order(s), "
                f"but {report.failed_count} failed:\n{summary}"
            ),
        )
    if report.failed_count > 0:
        return Notification(level="error", message=f"Failed to add all {report.failed_count} order(s):\n{summary}")
    return Notification(level="error", message="No valid orders found in the file.")


def header_message(issue: HeaderIssue) -> str:
    lines: List[str] = ["We couldn't import this file.", "Please fix the following issues:"]
    if issue.missing_columns:
        lines.append("Missing required columns:")
        lines.extend(f"- {column}" for column in issue.missing_columns)
    if issue.misnamed_columns:
        lines.append("Columns with invalid headers:")
        lines.extend(f"- \"{column.actual}\" should be \"{column.expected}\"" for column in issue.misnamed_columns)
    lines.append(HEADER_FOOTER)
    return "\n".join(lines)


def duplicate_message(issue: DuplicateOrderCodes) -> str:
    lines: List[str] = ["We couldn't import this file.", "Please fix the following issues:"]
    if issue.in_file:
        lines.append("Duplicate Order IDs in your file:")
        lines.extend(
            f"- {group.order_code} (found in rows {', '.join(str(row) for row in group.rows)})"
            for group in issue.in_file
        )
    if issue.existing:
        lines.append("Order IDs that already exist in your account:")
        lines.extend(f"- {code}" for code in issue.existing)
    lines.append(UNIQUE_FOOTER)
    return "\n".join(lines)


def issue_notification(issue: ImportIssue) -> Notification:
    if isinstance(issue, HeaderIssue):
        return Notification(level="warning", message=header_message(issue), persistent=True)
    if isinstance(issue, DuplicateOrderCodes):
        return Notification(level="warning", message=duplicate_message(issue), persistent=True)
    if isinstance(issue, NeedsCorrection):
        return Notification(
            level="warning",
            message=(
                f"Found {len(issue.invalid_rows)} order(s) with missing required fields. "
                "Please correct them below."
            ),
        )
    if isinstance(issue, MissingProducts):
        names = ", ".join(issue.missing_products)
        return Notification(
            level="warning",
            message=(
                f"{len(issue.missing_products)} product(s) from your file are not in your catalog: {names}. "
                "Create them to continue the import."
            ),
        )
    if isinstance(issue, IncompleteCorrections):
        return Notification(
            level="error",
            message=f"Please correct all {len(issue.invalid_rows)} invalid product(s) before confirming.",
        )
    if isinstance(issue, NoRows):
        return Notification(level="error", message="No valid orders found in the file.")
    if isinstance(issue, UnreadableFile):
        return Notification(level="error", message=f"Failed to process file: {issue.message}")
    raise TypeError(f"Unknown import issue: {type(issue).__name__}")


def import_notification(outcome: Result[ImportReport, ImportIssue]) -> Notification:
    """Render a pipeline outcome for the notification surface."""
    if isinstance(outcome, Ok):
        return report_notification(outcome.value)
    return issue_notification(outcome.error)
