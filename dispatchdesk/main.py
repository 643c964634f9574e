import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dispatchdesk.core.logging import configure_logging
from dispatchdesk.models import audit_log, job, price_matrix  # noqa: F401
from dispatchdesk.routers.accounting import router as accounting_router
from dispatchdesk.routers.auth import router as auth_router
from dispatchdesk.routers.billing import router as billing_router
from dispatchdesk.routers.jobs import router as jobs_router
from dispatchdesk.routers.price_matrix import router as price_matrix_router
from dispatchdesk.services.reminder_worker import start_reminder_task

logger = logging.getLogger(__name__)


async def _stop_reminder(task: asyncio.Task) -> None:
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        logger.info("Reminder worker stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    app.state.reminder_task = start_reminder_task()
    logger.info("DispatchDesk started", extra={"reminder": app.state.reminder_task is not None})
    try:
        yield
    finally:
        if app.state.reminder_task is not None:
            await _stop_reminder(app.state.reminder_task)


app = FastAPI(
    title="DispatchDesk Billing & Accounting",
    lifespan=lifespan,
)


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Unhandled exception",
            extra={"method": request.method, "path": request.url.path},
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    actor = getattr(request.state, "actor", None)
    logger.info(
        "Request handled",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "ms": round((time.perf_counter() - started) * 1000, 1),
            "user_id": actor.user_id if actor else None,
            "role": actor.role.value if actor else None,
        },
    )
    return response


app.include_router(auth_router)
app.include_router(jobs_router)
app.include_router(accounting_router)
app.include_router(billing_router)
app.include_router(price_matrix_router)


@app.get("/health")
def health():
    return {"status": "ok"}
