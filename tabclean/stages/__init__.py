"""Cleansing stages, in pipeline order.

classifier -> statistics -> imputer -> outliers -> normalizer, with the
encoder running over categorical columns and the report assembled last.
"""
from tabclean.stages.classifier import build_table, classify_columns, columns_of_kind
from tabclean.stages.encoder import CategoricalMapping, build_mappings, encode_table
from tabclean.stages.imputer import ImputationResult, impute_missing
from tabclean.stages.normalizer import NORMALIZE_METHODS, min_max_scale, normalize, rescale
from tabclean.stages.outliers import OutlierResult, find_outliers, resolve_outliers
from tabclean.stages.report import CleansingReport, build_report
from tabclean.stages.statistics import ColumnStats, compute_stats, compute_table_stats

__all__ = [
    "NORMALIZE_METHODS",
    "CategoricalMapping",
    "CleansingReport",
    "ColumnStats",
    "ImputationResult",
    "OutlierResult",
    "build_mappings",
    "build_report",
    "build_table",
    "classify_columns",
    "columns_of_kind",
    "compute_stats",
    "compute_table_stats",
    "encode_table",
    "find_outliers",
    "impute_missing",
    "normalize",
    "min_max_scale",
    "rescale",
    "resolve_outliers",
]
