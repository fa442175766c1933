import logging
import traceback
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic.models.error_log import ErrorLog

logger = logging.getLogger(__name__)


def log_error(
    db: Session,
    *,
    description: Optional[str] = None,
    endpoint: Optional[str] = None,
    module: Optional[str] = None,
    function: Optional[str] = None,
    http_status: Optional[int] = None,
    clinic_id: Optional[int] = None,
    user_id: Optional[int] = None,
    request_payload: Optional[Dict[str, Any]] = None,
    stack_trace: Optional[str] = None,
) -> None:
    """
    Persist an error row. Never raises: a failing insert is rolled back and
    only reported to the process log.
    """
    try:
        db.add(
            ErrorLog(
                description=(description or "")[:1000] or None,
                endpoint=endpoint,
                module=module,
                function=function,
                http_status=http_status,
                clinic_id=clinic_id,
                user_id=user_id,
                request_payload=request_payload,
                stack_trace=stack_trace,
            ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to persist error log")


def format_exception(exc: BaseException) -> str:
    return "".join(
        traceback.format_exception(type(exc), exc, exc.__traceback__))
