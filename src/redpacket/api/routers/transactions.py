"""Transaction submission API routes."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Gauge, Histogram

from ...application.dtos import (
    TransactionDTO,
    TransactionErrorDTO,
    TransactionResultDTO,
)
from ...application.ledger_service import LedgerService
from ...domain.errors import TransactionFailed
from ..dependencies import get_ledger_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])


TRANSACTION_DURATION_BUCKETS = (
    [round(0.5 * i, 1) for i in range(1, 21)]  # 0.5ms..10ms (0.5ms resolution)
    + [float(x) for x in range(15, 55, 5)]  # 15, 20, 25, ..., 50ms (5ms resolution)
    + [float("inf")]
)

transaction_requests_total = Counter(
    "redpacket_transaction_requests_total",
    "Total transactions submitted to the ledger",
    ["status"],
)

transaction_request_duration_milliseconds = Histogram(
    "redpacket_transaction_request_duration_milliseconds",
    "Wall time to verify, execute and commit a transaction (ms)",
    ["status"],
    buckets=TRANSACTION_DURATION_BUCKETS,
)

transaction_requests_inprogress = Gauge(
    "redpacket_transaction_requests_inprogress",
    "Number of transactions currently being processed",
    multiprocess_mode="livesum",
)

program_errors_total = Counter(
    "redpacket_program_errors_total",
    "Rejected transactions by error name",
    ["error"],
)


def _observe(status_label: str, start_time: float) -> None:
    transaction_requests_total.labels(status=status_label).inc()
    elapsed = (time.perf_counter() - start_time) * 1000
    transaction_request_duration_milliseconds.labels(status=status_label).observe(
        elapsed
    )


@router.post(
    "",
    response_model=TransactionResultDTO,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": TransactionErrorDTO}},
)
async def submit_transaction(
    transaction: TransactionDTO,
    service: LedgerService = Depends(get_ledger_service),
):
    """Execute a signed transaction; all of its instructions commit or none do."""
    start_time = time.perf_counter()
    transaction_requests_inprogress.inc()
    try:
        result = await service.submit_transaction(transaction)
        _observe("success", start_time)
        return result
    except TransactionFailed as e:
        _observe("rejected", start_time)
        program_errors_total.labels(error=e.name).inc()
        body = TransactionErrorDTO(
            error=e.name,
            code=e.code,
            instruction_index=e.instruction_index,
            message=str(e),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump()
        )
    except ValueError as e:
        _observe("client_error", start_time)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        _observe("server_error", start_time)
        logger.exception("Transaction processing failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process transaction: {str(e)}",
        )
    finally:
        transaction_requests_inprogress.dec()
