# WORKFLOW: Pydantic response schemas for the conversion and download endpoints.
# Used by: API routers (response_model), OpenAPI documentation, testing
# Schemas include:
# 1. FileConversionResponse - Single XML file converted to CSV
# 2. DirectoryConversionResponse - Directory conversion with batch summary
# 3. CompleteConversionResponse - Configured feed directory converted
# 4. SchemaReloadResponse - XSD schema table rebuilt
# 5. DownloadResponse - Feed archive downloaded and extracted
#
# Response flow: ETL step -> Pydantic model -> JSON response

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from etl.convert_directory import BatchSummary


class FileConversionResponse(BaseModel):
    message: str
    xml_file: str
    csv_file: str
    record_count: int = Field(..., ge=0)


class DirectoryConversionResponse(BaseModel):
    message: str
    xml_directory: str
    csv_directory: str
    summary: BatchSummary


class CompleteConversionResponse(BaseModel):
    message: str
    csv_directory: str
    summary: BatchSummary


class SchemaReloadResponse(BaseModel):
    message: str
    schema_directory: str
    record_types: int
    warnings: List[str] = Field(default_factory=list)


class DownloadResponse(BaseModel):
    message: str
    zip_file: Optional[str] = None
    extracted_to: Optional[str] = None
    file_size_mb: float
    duration_seconds: float

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "GAR delta XML downloaded and extracted successfully",
                "zip_file": "Downloads/gar_delta_xml.zip",
                "extracted_to": "Downloads/gar_delta_xml",
                "file_size_mb": 512.37,
                "duration_seconds": 94.2,
            }
        }
    )
