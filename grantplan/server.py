# FILE: grantplan/server.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from grantplan.core.config import CORS_ORIGINS, PAYMENT_GATEWAY, TEST_MODE
from grantplan.core.database import engine, init_models
from grantplan.services.errors import LedgerError

from grantplan.api import admin, auth, coupons, credits, payment_requests, payments

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("grantplan")

app = FastAPI(title="Grant business plan credits API")

# ================== ERRORS ==================

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s (%s)", request.method, request.url.path, exc.code, exc.message)
    else:
        logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

# ================== STARTUP ==================

@app.on_event("startup")
async def startup():
    await init_models()
    logger.info("Started (gateway=%s, test_mode=%s)", PAYMENT_GATEWAY, TEST_MODE)

# ================== ROUTES ==================

@app.get("/health")
async def health():
    return {"status": "ok"}

@app.get("/api/")
async def api_root():
    return {"message": "Grant business plan credits API"}

app.include_router(auth.router)
app.include_router(credits.router)
app.include_router(payments.router)
app.include_router(payment_requests.router)
app.include_router(coupons.router)
app.include_router(admin.router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("shutdown")
async def shutdown():
    await engine.dispose()
