import logging
import re
from typing import List, Optional

from shipment_pricing.core.enums import DeliveryType
from shipment_pricing.core.metrics import jobs_submitted
from shipment_pricing.schemas.job import ExtraServiceLine, JobCreate, JobCreated, JobSubmission
from shipment_pricing.schemas.quote import QuoteRequest, QuoteResponse
from shipment_pricing.services.backend import BackendClient
from shipment_pricing.services.extras import ExtrasCatalog
from shipment_pricing.services.quotes import QuoteService
from shipment_pricing.utils.idempotency import get_idempotent, set_idempotent

logger = logging.getLogger(__name__)

COUNTRY_SUFFIX = re.compile(r"t[üu]rk[iıİ]ye|turkey", re.IGNORECASE)
SPACE_BEFORE_COMMA = re.compile(r"\s+,")


class JobFormError(ValueError):
    pass


class SubmissionBlocked(Exception):

    def __init__(self, quote: QuoteResponse):
        message = quote.diagnostic.message if quote.diagnostic else "The shipment could not be priced."
        super().__init__(message)
        self.message = message
        self.quote = quote


def normalize_address(address: Optional[str]) -> str:
    """Drop anything after the country name and tidy spaces before commas."""
    if not address:
        return ""
    out = address
    match = COUNTRY_SUFFIX.search(address)
    if match:
        out = address[:match.end()]
    return SPACE_BEFORE_COMMA.sub(",", out).strip()


def validate_job_form(job: JobCreate) -> None:
    if not (job.pickup.address or "").strip() or not (job.dropoff.address or "").strip():
        raise JobFormError("Enter the pickup and drop-off addresses.")
    if job.payment_method is None:
        raise JobFormError("Select a payment method.")
    if job.delivery_type == DeliveryType.SCHEDULED and (job.delivery_date is None or not job.delivery_time):
        raise JobFormError("Scheduled delivery requires a date and a time.")


def extra_service_lines(extras: Optional[ExtrasCatalog], selected_ids) -> List[ExtraServiceLine]:
    if extras is None:
        return []
    return [
        ExtraServiceLine(name=offer.label, price=offer.price, service_id=index + 1)
        for index, offer in enumerate(extras.selected(selected_ids))
    ]


def build_submission(job: JobCreate, quote: QuoteResponse, extras: Optional[ExtrasCatalog]) -> JobSubmission:
    scheduled = job.delivery_type == DeliveryType.SCHEDULED
    campaign_code = (job.campaign_code or "").strip() or None
    return JobSubmission(
        campaign_code=campaign_code,
        carrier_type=job.carrier_type,
        delivery_type=job.delivery_type,
        delivery_date=job.delivery_date.strftime("%d.%m.%Y") if scheduled and job.delivery_date else None,
        delivery_time=job.delivery_time if scheduled else None,
        pickup_address=normalize_address(job.pickup.address),
        pickup_coordinates=(job.pickup.lat, job.pickup.lng),
        dropoff_address=normalize_address(job.dropoff.address),
        dropoff_coordinates=(job.dropoff.lat, job.dropoff.lng),
        extra_services=extra_service_lines(extras, job.selected_extra_ids),
        extra_services_total=quote.breakdown.extras_total,
        image_file_ids=[i.strip() for i in job.image_file_ids if i.strip()],
        payment_method=job.payment_method,
        special_notes=job.special_notes,
        total_price=quote.breakdown.grand_total,
        vehicle_product_id=job.vehicle_product_id or None,
    )


class JobService:

    def __init__(self, quotes: QuoteService):
        self.quotes = quotes

    async def submit(
        self,
        job: JobCreate,
        client: BackendClient,
        idempotency_key: Optional[str] = None,
    ) -> JobCreated:
        cached = await get_idempotent(client.token, idempotency_key)
        if cached:
            logger.info(f"Returning cached job submission for key {idempotency_key}")
            return JobCreated(**cached)

        validate_job_form(job)

        quote = await self.quotes.quote(
            QuoteRequest(
                pickup=job.pickup,
                dropoff=job.dropoff,
                carrier_type=job.carrier_type,
                vehicle_template=job.vehicle_template,
                selected_extra_ids=job.selected_extra_ids,
            ),
            client,
        )
        if not quote.ready_to_submit:
            jobs_submitted.labels(status="blocked").inc()
            raise SubmissionBlocked(quote)

        extras = await self.quotes.store.extras.get_or_none()
        submission = build_submission(job, quote, extras)

        try:
            result = await client.create_job(submission.model_dump(by_alias=True, exclude_none=True, mode="json"))
        except Exception:
            jobs_submitted.labels(status="failed").inc()
            raise

        jobs_submitted.labels(status="created").inc()
        data = result.get("data")
        created = JobCreated(
            message=result.get("message") or "New load created.",
            job=data if isinstance(data, dict) else None,
            total_price=submission.total_price,
        )
        await set_idempotent(client.token, idempotency_key, created.model_dump())
        logger.info(f"Job created with total price {submission.total_price}")
        return created
