"""Project records and their associations into flat report tables."""

from .config import ReportConfig
from .projector import project, project_one
from .renderer import generate_report_pdf, register_template, render_table_pdf, render_template_pdf
from .schema import DerivedComputationFailed, InvalidSpec, MissingAssociation, ProjectionError, ProjectionSpec
from .source import MappingRecord, ModelRecord, ObjectRecord, RecordSource, reportable, wrap_records
from .table import Table, TableRecord

__all__ = [
    "DerivedComputationFailed",
    "InvalidSpec",
    "MappingRecord",
    "MissingAssociation",
    "ModelRecord",
    "ObjectRecord",
    "ProjectionError",
    "ProjectionSpec",
    "RecordSource",
    "ReportConfig",
    "Table",
    "TableRecord",
    "generate_report_pdf",
    "project",
    "project_one",
    "register_template",
    "render_table_pdf",
    "render_template_pdf",
    "reportable",
    "wrap_records",
]
