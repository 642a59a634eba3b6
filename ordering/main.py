import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from ordering.api import cart_routes, order_routes
from ordering.core.config import LOG_LEVEL, SESSION_SECRET
from ordering.core.errors import OrderingError
from ordering.db import create_db_and_tables

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

# Create the FastAPI app
app = FastAPI(title="Ordering API", version="1.0.0")

# ✅ Session middleware (carries user_id / role)
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET)

# ✅ Allow frontend dev (CORS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def on_startup():
    log.info("Starting DB setup...")
    await create_db_and_tables()
    log.info("DB schema ready.")


@app.get("/health")
async def health():
    return {"status": "ok"}


app.include_router(cart_routes.router)
app.include_router(order_routes.router)
