"""FastAPI interface for control-file import"""
import logging
import os
import uuid
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .config import CATALOG_PATH, MAX_UPLOAD_BYTES, UPLOAD_DIR
from .errors import ControlImportError, PdfReadError
from .importer import ControlFileImporter
from .llm_client import LLMClient
from .logger import setup_logger
from .store import InMemoryStore

setup_logger()
logger = logging.getLogger(__name__)

app = FastAPI(title="Control File Import API", version="1.0.0")

# Initialize importer
importer: Optional[ControlFileImporter] = None


@app.on_event("startup")
async def startup_event():
    """Initialize importer on startup"""
    global importer
    try:
        store = InMemoryStore.from_file(CATALOG_PATH) if CATALOG_PATH else InMemoryStore()
        importer = ControlFileImporter(adapter=LLMClient(), store=store)
    except ControlImportError as e:
        logger.warning("Failed to initialize importer: %s", e)


def get_importer() -> ControlFileImporter:
    if importer is None:
        raise HTTPException(status_code=500, detail="Importer not initialized")
    return importer


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _remove(path: str):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error("Could not delete temporary upload %s: %s", path, e)


@app.post("/upload-control-file")
async def upload_control_file(
    pdf: UploadFile = File(...),
    control_importer: ControlFileImporter = Depends(get_importer),
):
    """
    Import every reservation listed in an uploaded control-file PDF.

    Accepts:
    - pdf: the control sheet (application/pdf, at most 10MB)

    Returns the validation summary, per-record results and the number of
    reservations created.
    """
    if not pdf.content_type or "pdf" not in pdf.content_type.lower():
        return _error(400, "The file must be a PDF")

    pdf_bytes = await pdf.read()
    if len(pdf_bytes) > MAX_UPLOAD_BYTES:
        return _error(400, f"File exceeds the {MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit")

    os.makedirs(UPLOAD_DIR, exist_ok=True)
    upload_path = os.path.join(UPLOAD_DIR, f"{uuid.uuid4().hex}.pdf")

    try:
        with open(upload_path, "wb") as f:
            f.write(pdf_bytes)
        logger.info("Received control file %s (%d bytes)", pdf.filename, len(pdf_bytes))

        report = await run_in_threadpool(control_importer.import_file, upload_path)
    except PdfReadError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.exception("Error processing control file %s", pdf.filename)
        return _error(500, f"Error processing PDF: {e}")
    finally:
        _remove(upload_path)

    if not report.is_control_file:
        return _error(400, "not a control file")

    if not report.success:
        return JSONResponse(status_code=502, content={
            "success": False,
            "propertyName": report.property_name,
            "error": report.error,
        })

    content = report.to_dict()
    content.pop("isControlFile")
    return content


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "importer_initialized": importer is not None
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
