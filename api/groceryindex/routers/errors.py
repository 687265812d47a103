from fastapi import HTTPException

from groceryindex.services.report_lifecycle import (
    DuplicateReportError,
    InvalidReportReferenceError,
    ReportLifecycleError,
    ReportNotFoundError,
    ReportNotPendingError,
    SelfVerificationError,
)

LIFECYCLE_STATUS: dict[type[ReportLifecycleError], int] = {
    InvalidReportReferenceError: 400,
    SelfVerificationError: 403,
    ReportNotFoundError: 404,
    ReportNotPendingError: 409,
    DuplicateReportError: 409,
}


def lifecycle_http_error(exc: ReportLifecycleError) -> HTTPException:
    """Translate a lifecycle rule violation into the matching HTTPException."""
    status_code = LIFECYCLE_STATUS.get(type(exc), 400)
    return HTTPException(status_code=status_code, detail=str(exc))
