from __future__ import annotations
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, Field, ConfigDict


# --------- Common ---------
class ErrorDetail(BaseModel):
    field: Optional[str] = None
    issue: Optional[str] = None


class ErrorEnvelope(BaseModel):
    code: str = Field(default="SERVER_ERROR")
    message: str
    details: Optional[List[ErrorDetail]] = None


class ErrorResponse(BaseModel):
    error: ErrorEnvelope


# --------- Inputs ---------
class ProjectionOptionsIn(BaseModel):
    """Projection options for one level; ``include`` may nest further options."""
    model_config = ConfigDict(populate_by_name=True)

    only: Optional[Union[str, List[str]]] = Field(default=None, description="Attribute name(s) to keep, in column order.")
    except_: Optional[Union[str, List[str]]] = Field(default=None, alias="except", description="Attribute name(s) to drop.")
    methods: Optional[Union[str, List[str]]] = Field(default=None, description="Derived value name(s) to append.")
    # Shape is checked by ProjectionSpec so malformed values surface as INVALID_PROJECTION
    include: Optional[Any] = Field(default=None, description="Association name, list of names, or mapping of name to nested options.")

    def to_options(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TableRequest(BaseModel):
    """Records to project plus the projection options."""
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "records": [
                    {"id": 1, "title": "Foo", "author": [{"name": "A"}], "tags": [{"label": "x"}, {"label": "y"}]}
                ],
                "options": {"only": ["title"], "include": ["author", "tags"]},
                "title": "Books",
            }
        ]
    })

    records: List[Optional[Dict[str, Any]]] = Field(default_factory=list, description="Records as nested objects; objects and lists of objects are associations.")
    options: ProjectionOptionsIn = Field(default_factory=ProjectionOptionsIn)
    title: Optional[str] = Field(default=None, description="Report title used by PDF output.")


class TemplateRequest(TableRequest):
    """A table request plus extra template assigns."""
    assigns: Dict[str, Any] = Field(default_factory=dict)


# --------- Outputs ---------
class TableOut(BaseModel):
    columns: List[str]
    rows: List[Dict[str, Any]]
    count: int
