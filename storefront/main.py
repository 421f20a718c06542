import logging

import uvicorn
from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from storefront.config import get_settings
from storefront.database import Base, engine
from storefront.errors import StorefrontError
from storefront.reconciler import handle_event
from storefront.routes import router
from storefront.store import get_store
from storefront.stripe_service import construct_event, get_stripe_client
from storefront import models  # noqa: F401  (registers tables)

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront Payment Hooks")

app.include_router(router)

Base.metadata.create_all(bind=engine)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0]) for error in exc.errors()]
    logger.info("Rejected %s %s: invalid %s", request.method, request.url.path, ", ".join(fields))
    return JSONResponse(status_code=400, content={"message": f"Invalid request: {', '.join(fields)}"})


@app.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    store=Depends(get_store),
    stripe_client=Depends(get_stripe_client),
):
    payload = await request.body()
    settings = get_settings()

    event = construct_event(
        payload,
        stripe_signature,
        settings.stripe_webhook_secret,
        settings.webhook_tolerance,
    )
    logger.info("Received Stripe event %s (%s)", event.get("id"), event.get("type"))

    # Once the signature checks out the delivery is acknowledged; a failed
    # reconciliation is left for the operator instead of a Stripe retry.
    # Store writes and the line-items request block, so they run off the loop.
    try:
        await run_in_threadpool(handle_event, event, store, stripe_client)
    except Exception:
        logger.exception("Failed to process %s event %s", event.get("type"), event.get("id"))

    return {"message": "Data received successfully"}


def run():
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
