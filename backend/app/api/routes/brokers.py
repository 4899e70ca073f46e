"""Data broker routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.services.broker_intelligence import BrokerIntelligenceStore
from app.services.removal_method import get_best_automation_method
from app.db.database import async_session
from brokers import get_broker, get_opt_out_url, get_removal_coverage

router = APIRouter()


class BrokerResponse(BaseModel):
    source: str
    name: str
    category: str
    opt_out_url: str | None
    privacy_email: str | None
    removal_method: str
    processing_days: int
    success_rate: float
    recommended_method: str | None
    automation_method: str
    automation_reason: str
    covers_sources: list[str]
    coverage_note: str | None


@router.get("/{source}", response_model=BrokerResponse)
async def get_broker_details(source: str):
    """Broker opt-out details with URL corrections and routing applied."""
    broker = get_broker(source.upper())
    if broker is None:
        raise HTTPException(status_code=404, detail="Broker not found")

    intel = await BrokerIntelligenceStore(async_session).get_broker_intelligence(broker.key)
    decision = get_best_automation_method(broker.key, intel)
    coverage = get_removal_coverage(broker.key)

    return BrokerResponse(
        source=broker.key,
        name=broker.name,
        category=broker.category,
        opt_out_url=get_opt_out_url(broker.key),
        privacy_email=broker.privacy_email,
        removal_method=broker.removal_method,
        processing_days=broker.processing_days,
        success_rate=intel.success_rate,
        recommended_method=intel.recommended_method,
        automation_method=decision.method.value,
        automation_reason=decision.reason,
        covers_sources=coverage["covered"],
        coverage_note=coverage["note"],
    )
