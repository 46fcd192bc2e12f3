# WORKFLOW: Conversion endpoints for turning extracted feed XML into CSV.
# Used by: Orchestration jobs, operators, integration testing
# Endpoints:
# 1. /conversion/xml-to-csv - Convert one XML file
# 2. /conversion/directory - Convert every XML file under a directory
# 3. /conversion/fias-complete - Convert the configured extract directory
# 4. /conversion/schemas/reload - Rebuild the XSD schema table
#
# Request flow: HTTP POST -> Parameter check -> Converter (worker thread) -> Response
# The schema table lives in app.state and is only rebuilt on an explicit reload.

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from starlette.concurrency import run_in_threadpool
from typing import Optional
import logging

from core.config import settings
from api.schemas.response import (
    CompleteConversionResponse,
    DirectoryConversionResponse,
    FileConversionResponse,
    SchemaReloadResponse,
)
from etl.convert_directory import convert_directory
from etl.errors import SchemaLoadError, SourceDirectoryNotFoundError, SourceNotFoundError
from etl.schema_resolver import SchemaTable, resolve
from etl.xml_to_csv import convert_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversion", tags=["conversion"])


def get_schema_table(request: Request) -> Optional[SchemaTable]:
    """Schema table loaded at startup, or None when none has been loaded."""
    return getattr(request.app.state, "schema_table", None)


def _require(**params: Optional[str]) -> None:
    if any(not value or not value.strip() for value in params.values()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{' and '.join(params)} are required",
        )


@router.post("/xml-to-csv", response_model=FileConversionResponse)
async def convert_xml_to_csv(
    xml_path: Optional[str] = Query(None, description="Source XML file"),
    csv_path: Optional[str] = Query(None, description="Destination CSV file"),
    schema_table: Optional[SchemaTable] = Depends(get_schema_table),
):
    """Convert a single XML file to CSV."""
    _require(xml_path=xml_path, csv_path=csv_path)

    try:
        record_count = await run_in_threadpool(convert_file, xml_path, csv_path, schema_table)
    except SourceNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error converting XML to CSV: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Conversion failed: {e}",
        )

    return FileConversionResponse(
        message="Conversion completed successfully",
        xml_file=xml_path,
        csv_file=csv_path,
        record_count=record_count,
    )


@router.post("/directory", response_model=DirectoryConversionResponse)
async def convert_xml_directory(
    xml_directory: Optional[str] = Query(None, description="Directory searched recursively for XML files"),
    csv_directory: Optional[str] = Query(None, description="Output directory"),
    schema_table: Optional[SchemaTable] = Depends(get_schema_table),
):
    """Convert every XML file under a directory, mirroring its layout."""
    _require(xml_directory=xml_directory, csv_directory=csv_directory)

    try:
        summary = await run_in_threadpool(convert_directory, xml_directory, csv_directory, schema_table)
    except SourceDirectoryNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error converting directory: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Conversion failed: {e}",
        )

    return DirectoryConversionResponse(
        message="Directory conversion completed",
        xml_directory=xml_directory,
        csv_directory=csv_directory,
        summary=summary,
    )


@router.post("/fias-complete", response_model=CompleteConversionResponse)
async def convert_fias_complete(
    schema_table: Optional[SchemaTable] = Depends(get_schema_table),
):
    """Convert the configured extract directory into the configured CSV directory."""
    logger.info("Starting complete GAR XML to CSV conversion")

    try:
        summary = await run_in_threadpool(
            convert_directory, settings.extract_path, settings.csv_path, schema_table
        )
    except Exception as e:
        logger.error(f"Error in complete GAR conversion: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Conversion failed: {e}",
        )

    return CompleteConversionResponse(
        message="GAR XML files converted to CSV successfully",
        csv_directory=settings.csv_path,
        summary=summary,
    )


@router.post("/schemas/reload", response_model=SchemaReloadResponse)
async def reload_schemas(request: Request):
    """Rebuild the schema table from the configured XSD directory."""
    try:
        schema_table = await run_in_threadpool(resolve, settings.schema_path)
    except SchemaLoadError as e:
        logger.error(f"Schema reload failed: {e}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    request.app.state.schema_table = schema_table
    return SchemaReloadResponse(
        message="Schemas reloaded",
        schema_directory=settings.schema_path,
        record_types=len(schema_table),
        warnings=[str(warning) for warning in schema_table.warnings],
    )
