from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from shipment_pricing.core.dependencies import get_backend_client, get_job_service
from shipment_pricing.core.errors import LookupUnavailable
from shipment_pricing.schemas.job import JobCreate, JobCreated
from shipment_pricing.services.backend import BackendClient
from shipment_pricing.services.jobs import JobFormError, JobService, SubmissionBlocked

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("/", response_model=JobCreated)
async def create_job(
    payload: JobCreate,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    service: JobService = Depends(get_job_service),
    client: BackendClient = Depends(get_backend_client),
):
    try:
        return await service.submit(payload, client, idempotency_key)
    except JobFormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubmissionBlocked as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": e.message,
                "diagnostic": e.quote.diagnostic.model_dump(mode="json") if e.quote.diagnostic else None,
                "breakdown": e.quote.breakdown.model_dump(mode="json"),
            },
        )
    except LookupUnavailable as e:
        raise HTTPException(
            status_code=503,
            detail={"kind": str(e.kind), "resource": e.resource, "message": e.message, "retryable": e.retryable},
        )
