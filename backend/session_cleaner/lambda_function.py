import json
import logging

from sqlalchemy.exc import SQLAlchemyError

from taskflow import crud
from taskflow.database import SessionLocal
from taskflow.logging_config import LOG_FORMAT

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def apply_log_format() -> None:
    """Reformat the handlers the Lambda runtime installs on the root logger."""
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in logger.handlers:
        handler.setFormatter(formatter)


apply_log_format()


def lambda_handler(event, context):
    logger.info("=== Session cleanup started ===")
    logger.info(f"Incoming event: {json.dumps(event)}")
    if context is not None:
        logger.info(f"Request ID: {context.aws_request_id}")

    db = SessionLocal()
    try:
        deleted_sessions = crud.purge_expired_sessions(db)
        logger.info(f"Deleted {deleted_sessions} expired sessions.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Session cleanup failed!")
        logger.exception(e)
        raise
    finally:
        db.close()
        logger.info("Database session closed.")

    logger.info(f"=== Session cleanup completed === Deleted sessions: {deleted_sessions}")

    return {
        "statusCode": 200,
        "body": json.dumps({"deleted_sessions": deleted_sessions}),
    }
