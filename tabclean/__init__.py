"""Canonical tabular cleansing pipeline for the training dashboard.

Imputes missing numeric values, resolves IQR outliers, standardises numeric
columns, encodes categorical columns and reports what was done.
"""
from tabclean.config import CleaningConfig
from tabclean.pipeline import CleansingPipeline, PipelineResult, clean_table
from tabclean.session import DashboardSession
from tabclean.stages.report import CleansingReport
from tabclean.table import MISSING, ColumnKind, Number, RawTable, Table, Text, load_csv_text

__version__ = "1.0.0"

__all__ = [
    "MISSING",
    "CleaningConfig",
    "CleansingPipeline",
    "CleansingReport",
    "ColumnKind",
    "DashboardSession",
    "Number",
    "PipelineResult",
    "RawTable",
    "Table",
    "Text",
    "clean_table",
    "load_csv_text",
]
