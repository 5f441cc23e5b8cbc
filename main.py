# main.py
import hmac
import io
import json
import logging
import math

import pandas as pd
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from openai import OpenAIError

import llm
from config import Settings, get_settings
from enrichment import trigger_enrichment
from models import (
    CreatorSummary,
    EnrichRequest,
    PitchStrategyResult,
    StrategyRequest,
    SummarizeRequest,
)
from normalizer import normalize_response
from storage import CallbackLog, EnrichmentStore
from valuation import estimate_value, rank_brands

app_settings = get_settings()

logging.basicConfig(
    level=app_settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Creator Outreach API", version="0.1")
app.state.store = EnrichmentStore(retention_minutes=app_settings.job_retention_minutes)
app.state.callback_log = CallbackLog(capacity=app_settings.callback_history_size)


def get_store(request: Request) -> EnrichmentStore:
    return request.app.state.store


def get_callback_log(request: Request) -> CallbackLog:
    return request.app.state.callback_log


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _reject_constant(name):
    # NaN and Infinity cannot be echoed back as JSON
    raise ValueError(f"non-finite number {name}")


def _finite_float(text):
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"non-finite number {text}")
    return value


@app.get("/")
def root():
    return {"message": "Creator Outreach API is running! Visit /docs for interactive API docs."}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.post("/enrich")
def enrich(body: EnrichRequest,
           settings: Settings = Depends(get_settings),
           store: EnrichmentStore = Depends(get_store)):
    handle = (body.handle or "").strip()
    if not handle:
        raise HTTPException(status_code=400, detail="Missing TikTok handle")
    try:
        outcome = trigger_enrichment(handle, body.niche_description, store=store, settings=settings)
    except Exception as e:
        logger.exception("Enrichment error")
        raise HTTPException(status_code=500, detail=f"Enrichment failed: {e}")

    if outcome.mode == "async":
        return {"status": "pending", "requestId": outcome.request_id}
    return {"status": "complete", "source": outcome.tier, **_dump(outcome.data)}


@app.get("/enrich/{request_id}")
def poll_enrichment(request_id: str, store: EnrichmentStore = Depends(get_store)):
    job = store.get(request_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Request not found")
    if job.status == "pending":
        return {"status": "pending"}
    return {"status": "complete", **_dump(job.payload)}


@app.get("/enrich/{request_id}/export")
def export_brands(request_id: str, store: EnrichmentStore = Depends(get_store)):
    job = store.get(request_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Request not found")
    if job.status == "pending":
        raise HTTPException(status_code=409, detail="Enrichment still pending")
    if not job.payload.brands:
        raise HTTPException(status_code=404, detail="No brands to export")

    followers = job.payload.creator.followers
    rows = []
    for b in rank_brands(job.payload.brands):
        row = b.model_dump()
        row["estimated_value"] = estimate_value(b.fit_score, followers)
        rows.append(row)
    df = pd.DataFrame(rows)
    stream = io.StringIO()
    df.to_csv(stream, index=False)
    filename = f"brands-{job.payload.creator.handle or request_id}.csv"
    return StreamingResponse(
        io.BytesIO(stream.getvalue().encode()),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.post("/callback")
async def provider_callback(request: Request,
                            settings: Settings = Depends(get_settings),
                            store: EnrichmentStore = Depends(get_store),
                            callback_log: CallbackLog = Depends(get_callback_log)):
    """
    Receiver for provider webhooks. Always answers 200 so the provider never
    retries or alerts; problems are reported in a `warning` field instead.
    """
    raw = (await request.body()).decode("utf-8", errors="replace")

    if settings.callback_secret:
        presented = request.headers.get("authorization", "")
        expected = f"Bearer {settings.callback_secret}"
        if not hmac.compare_digest(presented.encode(), expected.encode()):
            logger.warning("Callback authorization mismatch; payload not applied")
            callback_log.append(raw, "auth mismatch")
            return {"status": "ok", "warning": "Authorization mismatch; payload not applied"}

    try:
        body = json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)
    except (ValueError, RecursionError):
        logger.warning("Callback body is not valid JSON: %r", raw[:2000])
        callback_log.append(raw, "invalid JSON")
        return {"status": "ok", "warning": "Body is not valid JSON; payload not applied"}
    if not isinstance(body, dict):
        logger.warning("Callback body is not a JSON object: %r", raw[:2000])
        callback_log.append(raw, "not an object")
        return {"status": "ok", "warning": "Body is not a JSON object; payload not applied", "received": body}

    request_id = body.get("request_id") or body.get("requestId")
    if not request_id:
        logger.warning("Callback without request_id; nothing stored")
        callback_log.append(raw, "missing request_id")
        return {"status": "ok", "warning": "Missing request_id; payload not stored", "received": body}

    handle = body.get("tiktok_handle") or body.get("handle") or ""
    result = normalize_response(body, str(handle))
    store.complete(str(request_id), result)
    callback_log.append(raw, f"completed {request_id}")
    logger.info("Enrichment %s completed via callback (%d brands)", request_id, len(result.brands))
    return {"status": "ok", "requestId": str(request_id), "received": body}


@app.get("/callback", response_class=PlainTextResponse)
def callback_history(callback_log: CallbackLog = Depends(get_callback_log)):
    return callback_log.render()


@app.post("/strategy", response_model=PitchStrategyResult)
def create_strategy(body: StrategyRequest, settings: Settings = Depends(get_settings)):
    marketing_request = (body.marketing_request or "").strip()
    if not body.creator or not body.creator.handle or not body.brands or not marketing_request:
        raise HTTPException(status_code=400,
                            detail="Missing required fields: creator, brands, and marketingRequest")
    try:
        return llm.generate_strategy(body.creator, body.brands, marketing_request, settings=settings)
    except (llm.LLMError, OpenAIError) as e:
        logger.exception("Strategy generation failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/summarize", response_model=CreatorSummary)
def summarize(body: SummarizeRequest, settings: Settings = Depends(get_settings)):
    if not body.creator or not body.creator.handle:
        raise HTTPException(status_code=400, detail="Missing creator data")
    try:
        return llm.summarize_creator(body.creator, settings=settings)
    except (llm.LLMError, OpenAIError) as e:
        logger.exception("Creator summary failed")
        raise HTTPException(status_code=500, detail=str(e))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
