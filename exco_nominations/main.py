# main.py
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from exco_nominations.config import CORS_ORIGINS
from exco_nominations.errors import NominationError
from exco_nominations.http_errors import http_error_handler, nomination_error_handler, request_validation_handler
from exco_nominations.routes.admin_routes import router as admin_router
from exco_nominations.routes.nomination_routes import router as nomination_router
from exco_nominations.routes.voter_routes import router as voter_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="EXCO Nominations API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(NominationError, nomination_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)

app.include_router(voter_router)
app.include_router(nomination_router)
app.include_router(admin_router)


@app.get("/health", tags=["Root"])
def health_check():
    return {"status": "healthy", "database": "MongoDB"}


@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Welcome to the EXCO Nominations API"}
