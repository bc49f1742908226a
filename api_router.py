from __future__ import annotations
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Body
from fastapi.responses import Response

from reportable import ReportConfig, project, render_table_pdf, render_template_pdf, wrap_records
from reportable.config import load_config_from_yaml
from reportable.table import Table
from schemas import TableRequest, TableOut, TemplateRequest
from settings import REPORT_CONFIG_PATH

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
CSV_MEDIA_TYPE = "text/csv"


def _require_api_headers(
    x_app_id: Annotated[Optional[str], Header(alias="X-App-ID")] = None,
    authorization: Annotated[Optional[str], Header(alias="Authorization")] = None,
) -> None:
    if not authorization or not str(authorization).strip():
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    if not x_app_id:
        raise HTTPException(status_code=400, detail="Missing required headers: X-App-ID")


router = APIRouter(prefix="/api", dependencies=[Depends(_require_api_headers)])


# --------------------- Helpers ---------------------


@lru_cache()
def _base_config() -> ReportConfig:
    if REPORT_CONFIG_PATH:
        return load_config_from_yaml(Path(REPORT_CONFIG_PATH))
    return ReportConfig()


def _report_config(title: Optional[str]) -> ReportConfig:
    cfg = _base_config().model_copy()
    if title:
        cfg.title = title
    return cfg


def _project(payload: TableRequest) -> Table:
    records = wrap_records(payload.records)
    return project(records, payload.options.to_options())


def pdf_response(content: bytes, filename: str = "report.pdf") -> Response:
    """Serve a PDF inline so browsers display it rather than download it."""
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


_SAMPLE = {
    "summary": "Books with authors",
    "value": {
        "records": [
            {"id": 1, "title": "Foo", "author": [{"name": "A"}]},
        ],
        "options": {"only": ["title"], "include": ["author"]},
        "title": "Books",
    },
}


# --------------- Tables -----------------
@router.post("/reports/table", response_model=TableOut, tags=["Reports"], summary="Project records into a table (JSON)")
def table_json(payload: TableRequest = Body(..., openapi_examples={"sample": _SAMPLE})) -> TableOut:
    table = _project(payload)
    return TableOut(columns=list(table.column_names), rows=table.to_dicts(), count=len(table))


@router.post("/reports/table.csv", tags=["Reports"], summary="Project records into a table (CSV)")
def table_csv(payload: TableRequest = Body(..., openapi_examples={"sample": _SAMPLE})) -> Response:
    table = _project(payload)
    return Response(content=table.to_csv(), media_type=CSV_MEDIA_TYPE)


@router.post("/reports/table.pdf", tags=["Reports"], summary="Project records into a table (PDF, inline)")
def table_pdf(payload: TableRequest = Body(..., openapi_examples={"sample": _SAMPLE})) -> Response:
    table = _project(payload)
    cfg = _report_config(payload.title)
    return pdf_response(render_table_pdf(table, cfg))


@router.post("/reports/render/{template}", tags=["Reports"], summary="Render a registered PDF template")
def render_template(template: str, payload: TemplateRequest = Body(...)) -> Response:
    table = _project(payload)
    assigns = dict(payload.assigns)
    assigns.setdefault("table", table)
    cfg = _report_config(payload.title)
    logger.info("render_template", extra={"template": template, "rows": len(table)})
    return pdf_response(render_template_pdf(template, assigns, cfg), filename=f"{template}.pdf")
