# src/ephemera/api/v1/endpoints/system.py
"""Operational endpoints for Ephemera."""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Header, HTTPException, status

from ephemera.core.settings import settings
from ephemera.schemas.system import SweepResponse

from ..dependencies import RetentionSweeperDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system"])


def _check_sweeper_token(token: str | None) -> None:
    expected = settings.sweeper_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Retention sweep endpoint is disabled",
        )
    if token is None or not secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected retention sweep request with a bad token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid sweeper token",
        )


@router.post("/retention/sweep")
async def run_retention_sweep(
    db: SessionDep,
    sweeper: RetentionSweeperDep,
    x_sweeper_token: str | None = Header(default=None),
) -> SweepResponse:
    """Run one retention pass, for external schedulers.

    Requires the ``X-Sweeper-Token`` header to match ``SWEEPER_TOKEN``; the
    endpoint is disabled while that setting is empty.
    """
    _check_sweeper_token(x_sweeper_token)
    result = sweeper.sweep(db)
    return SweepResponse(**result.as_dict())
