from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Response, status

from commercial_invoice.config import InvoiceSettings, allowed_environments, current_environment
from commercial_invoice.errors import InvoiceAssetError, InvoiceConsistencyError, InvoiceError
from commercial_invoice.service import generate_commercial_invoice
from commercial_invoice.store import InvoiceStore


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("commercial-invoice")

APP_VERSION = os.getenv("APP_VERSION", "0.1.0")

app = FastAPI()


def get_invoice_store() -> InvoiceStore:
    from commercial_invoice.firestore_store import FirestoreInvoiceStore

    return FirestoreInvoiceStore()


def get_settings() -> InvoiceSettings:
    return InvoiceSettings.from_env()


@app.get("/version")
async def version() -> Dict[str, Any]:
    return {
        "status": "ok",
        "revision": os.getenv("K_REVISION"),
        "service": os.getenv("K_SERVICE"),
        "commit": os.getenv("COMMIT_SHA") or os.getenv("REVISION_ID"),
        "app_version": APP_VERSION,
    }


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


def _enforce_environment() -> None:
    env = current_environment()
    if env not in allowed_environments():
        logger.warning("Commercial invoice requested in disallowed environment %s", env)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Error 403: Forbidden")


def _render(invoice_id: Optional[str], store: InvoiceStore, settings: InvoiceSettings) -> Response:
    _enforce_environment()

    if not invoice_id or not invoice_id.strip():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No Invoice ID specified")

    invoice = store.get_invoice(invoice_id.strip())
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No invoice found!")

    try:
        pdf = generate_commercial_invoice(invoice, store, settings)
    except InvoiceError as exc:
        logger.info("Commercial invoice %s rejected: %s", invoice.pkstring, exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except (InvoiceConsistencyError, InvoiceAssetError) as exc:
        logger.exception("Commercial invoice %s failed: %s", invoice.pkstring, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": "inline"},
    )


@app.get("/commercial-invoice")
def commercial_invoice(
    id: Optional[str] = None,
    store: InvoiceStore = Depends(get_invoice_store),
    settings: InvoiceSettings = Depends(get_settings),
) -> Response:
    return _render(id, store, settings)


@app.get("/commercial-invoice/{invoice_id}")
def commercial_invoice_by_path(
    invoice_id: str,
    store: InvoiceStore = Depends(get_invoice_store),
    settings: InvoiceSettings = Depends(get_settings),
) -> Response:
    return _render(invoice_id, store, settings)
