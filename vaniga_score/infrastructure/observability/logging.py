"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from vaniga_score.config import settings
from vaniga_score.domain.models import ScoreResult


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_score_recompute(business_id: str, result: ScoreResult, loan_eligible: bool) -> None:
    """Log the full breakdown of a recompute so scores can be audited from logs"""
    logging.info(
        "Score recomputed",
        extra={
            "business_id": business_id,
            "step": "score_recomputed",
            "score": result.score,
            "volume": float(result.breakdown.volume),
            "consistency": result.breakdown.consistency,
            "health": float(result.breakdown.health),
            "total_volume": float(result.metrics.total_volume),
            "active_days": result.metrics.active_days,
            "collection_rate_percent": result.metrics.collection_rate_percent,
            "loan_eligible": loan_eligible,
        },
    )


def log_mutation(
    request_id: str,
    business_id: str,
    operation: str,
    updated_score: int,
    score_stale: bool,
    duration_ms: float,
    transaction_id: Optional[str] = None,
) -> None:
    """Log structured mutation outcome"""
    logging.info(
        "Ledger mutation completed",
        extra={
            "request_id": request_id,
            "business_id": business_id,
            "transaction_id": transaction_id,
            "step": "mutation_complete",
            "operation": operation,
            "updated_score": updated_score,
            "score_stale": score_stale,
            "duration_ms": duration_ms,
        },
    )
