"""
PipelineDefinition model describing one logical ETL job.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from etlflow.utils.validation import ValidationError, validate_pipeline_name

SourceType = Literal["excel", "csv", "json", "api"]
DestinationType = Literal["database", "file", "api"]
DataType = Literal["string", "number", "date", "boolean"]
FieldTransformation = Literal["trim", "uppercase", "lowercase", "currency"]
Operation = Literal["clean", "validate", "calculate", "format", "lookup"]


class FieldMapping(BaseModel):
    """
    Declarative rule deriving one destination field from one source field.

    Attributes:
        source_field: Key to read from the raw record
        data_type: Target type: "string", "number", "date", "boolean"
        required: Missing value is a record failure when True
        default_value: Substituted for a missing value when not required
        transformation: Optional per-field transformation applied after coercion
    """

    source_field: str = Field(..., min_length=1, alias="sourceField")
    data_type: DataType = Field("string", alias="dataType")
    required: bool = False
    default_value: Any = Field(None, alias="defaultValue")
    transformation: FieldTransformation | None = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "sourceField": "Allocated Budget",
                "dataType": "number",
                "required": True,
                "transformation": "currency"
            }
        }


class SourceConfig(BaseModel):
    """
    Where records are extracted from and how they map to destination fields.

    Attributes:
        type: "excel", "csv", "json" or "api"
        location: File path or URL
        mapping: Destination field name -> FieldMapping, applied in order
        credentials: Extra HTTP headers carrying credentials (api sources)
        headers: Extra HTTP headers (api sources)
        options: Reader options ("delimiter", "sheet", "encoding")
    """

    type: SourceType
    location: str = Field(..., min_length=1)
    mapping: dict[str, FieldMapping]
    credentials: dict[str, str] | None = None
    headers: dict[str, str] | None = None
    options: dict[str, Any] = Field(default_factory=dict)


class DestinationConfig(BaseModel):
    """
    Where successfully transformed records are loaded.

    Attributes:
        type: "database", "file" or "api"
        location: Connection string, file path or URL
        table: Target table (database destinations)
        key_fields: Conflict key for upserts (database destinations)
        credentials: Extra HTTP headers carrying credentials (api destinations)
        headers: Extra HTTP headers (api destinations)
    """

    type: DestinationType
    location: str = Field(..., min_length=1)
    table: str | None = None
    key_fields: list[str] = Field(default_factory=list, alias="keyFields")
    credentials: dict[str, str] | None = None
    headers: dict[str, str] | None = None

    class Config:
        populate_by_name = True


class TransformationRule(BaseModel):
    """
    A pipeline-level operation applied to one field of an already-mapped record.
    """

    field: str = Field(..., min_length=1)
    operation: Operation
    parameters: dict[str, Any] = Field(default_factory=dict)


class PipelineDefinition(BaseModel):
    """
    Configuration of one logical ETL job.

    A definition is immutable for the duration of a run and changed between
    runs only through the configuration store.

    Attributes:
        name: Unique identifier; keys scheduling, locking and history lookups
        source: SourceConfig
        destination: DestinationConfig
        transformations: Ordered TransformationRule list applied after mapping
        schedule: Five-field cron expression; None means manual trigger only
        enabled: Gate for scheduling
        description: Free text shown in status listings
    """

    name: str
    source: SourceConfig
    destination: DestinationConfig
    transformations: list[TransformationRule] = Field(default_factory=list)
    schedule: str | None = None
    enabled: bool = True
    description: str | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        """Restrict names to characters that are safe as keys and file names."""
        try:
            return validate_pipeline_name(v)
        except ValidationError as e:
            raise ValueError(str(e))

    @field_validator("schedule")
    @classmethod
    def normalize_schedule(cls, v):
        """Treat blank schedules as manual-trigger-only."""
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    def to_document(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "budget_etl",
                "source": {
                    "type": "excel",
                    "location": "./data/budget/Q4_Budget_2024.xlsx",
                    "mapping": {
                        "svp_id": {"sourceField": "SVP ID", "dataType": "string", "required": True}
                    }
                },
                "destination": {
                    "type": "database",
                    "location": "postgresql://localhost:5432/dashboard",
                    "table": "budget_data",
                    "keyFields": ["svp_id"]
                },
                "transformations": [],
                "schedule": "0 */6 * * *",
                "enabled": True
            }
        }
