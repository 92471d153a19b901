# tabclean/api/schemas.py
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

OutlierPolicy = Literal['replace', 'drop']
LabelPolicy = Literal['keep', 'drop']


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PreprocessRequest(CamelModel):
    """Request schema for cleaning a CSV document"""
    csv_content: str = Field(..., alias="csvContent", description="Raw CSV text")
    outlier_policy: Optional[OutlierPolicy] = Field(
        None, alias="outlierPolicy", description="Override the configured outlier policy"
    )
    label_policy: Optional[LabelPolicy] = Field(
        None, alias="labelPolicy", description="Override the configured missing-label policy"
    )
    has_header: Optional[bool] = Field(
        None, alias="hasHeader", description="Whether the first row holds column names; detected when omitted"
    )
    include_data: bool = Field(True, alias="includeData", description="Return the cleaned table and labels")


class CleansingReportModel(CamelModel):
    """Response schema for the cleansing report"""
    samples: int = Field(..., ge=0, description="Row count after all row dropping")
    features: int = Field(..., ge=0, description="Number of numeric feature columns")
    missing_filled: int = Field(..., alias="missingFilled", ge=0)
    outliers_removed: int = Field(..., alias="outliersRemoved", ge=0)
    categorical_mappings: Dict[str, List[str]] = Field(default_factory=dict, alias="categoricalMappings")
    ready: bool
    outlier_policy: Optional[OutlierPolicy] = Field(None, alias="outlierPolicy")
    malformed_cells: int = Field(0, alias="malformedCells", ge=0)
    missing_labels: int = Field(0, alias="missingLabels", ge=0)
    dropped_label_rows: int = Field(0, alias="droppedLabelRows", ge=0)
    skipped_columns: List[str] = Field(default_factory=list, alias="skippedColumns")
    outliers_converged: bool = Field(True, alias="outliersConverged")


class TableModel(BaseModel):
    """Cleaned table: column names and rows of number, text or null cells"""
    columns: List[str]
    rows: List[List[Union[float, str, None]]]


class PreprocessResponse(BaseModel):
    """Response schema for a cleaning run"""
    report: CleansingReportModel
    data: Optional[TableModel] = None
    labels: Optional[List[Optional[float]]] = None


class ErrorResponse(BaseModel):
    """Response schema for errors"""
    error: str = Field(..., description="Error message")
    details: Optional[str] = Field(None, description="Detailed error information")


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    delegate_configured: bool
