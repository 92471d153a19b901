# tabclean/pipeline.py
import logging
import operator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Dict, List, Optional, Tuple, TypedDict, Union

from langgraph.graph import END, START, StateGraph

from tabclean.config import CleaningConfig
from tabclean.exceptions import PipelineError
from tabclean.stages.classifier import build_table, classify_columns, columns_of_kind
from tabclean.stages.encoder import CategoricalMapping, build_mappings, encode_table
from tabclean.stages.imputer import impute_missing
from tabclean.stages.normalizer import normalize
from tabclean.stages.outliers import resolve_outliers
from tabclean.stages.report import CleansingReport, build_report
from tabclean.stages.statistics import compute_table_stats
from tabclean.table import MISSING, ColumnKind, Number, RawTable, Table, load_csv_text
from tabclean.utils.logging_config import PipelineLogger, log_execution_time

logger = logging.getLogger(__name__)


def _merge_counters(left: Dict[str, int], right: Dict[str, int]) -> Dict[str, int]:
    merged = dict(left or {})
    merged.update(right or {})
    return merged


class PipelineState(TypedDict, total=False):
    """State threaded through the cleansing stages"""
    # Input
    raw: RawTable

    # Data
    table: Table
    kinds: Dict[str, ColumnKind]
    mappings: Dict[str, CategoricalMapping]
    report: CleansingReport
    outliers_converged: bool

    # Bookkeeping
    counters: Annotated[Dict[str, int], _merge_counters]
    skipped_columns: Annotated[List[str], operator.add]
    completed_stages: Annotated[List[str], operator.add]
    errors: Annotated[List[str], operator.add]
    execution_log: Annotated[List[str], operator.add]


@dataclass
class PipelineResult:
    table: Table
    report: CleansingReport
    labels: List[Optional[float]]
    kinds: Dict[str, ColumnKind] = field(default_factory=dict)
    mappings: Dict[str, CategoricalMapping] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    execution_log: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_response(self, include_data: bool = True) -> dict:
        """Response body: ``{report, data?, labels?}``"""
        response = {'report': self.report.to_dict()}
        if include_data:
            response['data'] = {'columns': list(self.table.columns), 'rows': self.table.to_records()}
            response['labels'] = list(self.labels)
        return response


def extract_labels(table: Table) -> List[Optional[float]]:
    """Label column values; None where the label is missing"""
    if not table.columns:
        return []
    return [cell.value if isinstance(cell, Number) else None for cell in table.column(table.label_column)]


class CleansingPipeline:
    """Canonical cleaning pipeline over one in-memory table.

    Stage order: classify -> impute -> resolve outliers -> normalize -> encode
    -> report. Stats are recomputed before each numeric stage so every stage
    sees the effect of the previous one. A run holds no state beyond its own
    graph state, so one instance may serve independent requests.
    """

    def __init__(self, config: Optional[CleaningConfig] = None):
        self.config = config or CleaningConfig()

        issues = self.config.validate()
        if issues:
            raise ValueError("; ".join(issues))

        self.graph = self._build_graph()
        self.compiled_graph = self.graph.compile()

        logger.debug(f"Cleansing pipeline ready (outlier policy: {self.config.OUTLIER_POLICY})")

    def _build_graph(self) -> StateGraph:
        """Build the stage graph"""
        workflow = StateGraph(PipelineState)

        workflow.add_node("classify_columns", self._classify_columns)
        workflow.add_node("impute_missing", self._impute_missing)
        workflow.add_node("resolve_outliers", self._resolve_outliers)
        workflow.add_node("normalize", self._normalize)
        workflow.add_node("encode_categoricals", self._encode_categoricals)
        workflow.add_node("build_report", self._build_report)

        workflow.add_edge(START, "classify_columns")

        # An empty table or a failed stage goes straight to the report
        workflow.add_conditional_edges(
            "classify_columns",
            self._route_after_classification,
            {"proceed": "impute_missing", "report": "build_report"}
        )
        workflow.add_conditional_edges(
            "impute_missing",
            self._route_after_stage,
            {"proceed": "resolve_outliers", "report": "build_report"}
        )
        workflow.add_conditional_edges(
            "resolve_outliers",
            self._route_after_stage,
            {"proceed": "normalize", "report": "build_report"}
        )
        workflow.add_conditional_edges(
            "normalize",
            self._route_after_stage,
            {"proceed": "encode_categoricals", "report": "build_report"}
        )

        workflow.add_edge("encode_categoricals", "build_report")
        workflow.add_edge("build_report", END)

        return workflow

    def _route_after_classification(self, state: PipelineState) -> str:
        table = state.get("table")
        if state.get("errors") or table is None or len(table) == 0:
            return "report"
        return "proceed"

    def _route_after_stage(self, state: PipelineState) -> str:
        return "report" if state.get("errors") else "proceed"

    def _numeric_columns(self, state: PipelineState) -> List[str]:
        return columns_of_kind(state["kinds"], ColumnKind.NUMERIC)

    def _classify_columns(self, state: PipelineState) -> dict:
        try:
            with PipelineLogger("classify_columns", logger) as step:
                raw = state["raw"]
                kinds = classify_columns(raw, sample_rows=self.config.CLASSIFY_SAMPLE_ROWS)
                table, malformed = build_table(raw, kinds)

                counters = {'malformed_cells': malformed, 'missing_labels': 0, 'dropped_label_rows': 0}
                if table.columns:
                    label = table.label_column
                    missing_label = [row[label] is MISSING for row in table.rows]
                    if self.config.LABEL_POLICY == 'drop':
                        table = table.filter_rows([not flag for flag in missing_label])
                        counters['dropped_label_rows'] = sum(missing_label)
                    else:
                        counters['missing_labels'] = sum(missing_label)

                step.log_metric("rows", len(table))
                step.log_metric("numeric_columns", len(columns_of_kind(kinds, ColumnKind.NUMERIC)))

            return {
                "kinds": kinds,
                "table": table,
                "counters": counters,
                "completed_stages": ["classify_columns"],
                "execution_log": [f"Classified {len(kinds)} columns over {len(table)} rows"],
            }
        except Exception as e:
            logger.error(f"Column classification failed: {str(e)}")
            return {
                "kinds": {},
                "table": Table([]),
                "errors": [f"Column classification error: {str(e)}"],
            }

    def _impute_missing(self, state: PipelineState) -> dict:
        try:
            with PipelineLogger("impute_missing", logger) as step:
                columns = self._numeric_columns(state)
                stats = compute_table_stats(state["table"], columns, self.config.IQR_MULTIPLIER)
                result = impute_missing(state["table"], columns, stats)
                step.log_metric("missing_filled", result.filled)

            return {
                "table": result.table,
                "counters": {'missing_filled': result.filled},
                "skipped_columns": result.skipped_columns,
                "completed_stages": ["impute_missing"],
                "execution_log": [f"Imputed {result.filled} missing values"],
            }
        except Exception as e:
            logger.error(f"Imputation failed: {str(e)}")
            return {"errors": [f"Imputation error: {str(e)}"]}

    def _resolve_outliers(self, state: PipelineState) -> dict:
        try:
            with PipelineLogger("resolve_outliers", logger) as step:
                columns = self._numeric_columns(state)
                stats = compute_table_stats(state["table"], columns, self.config.IQR_MULTIPLIER)
                result = resolve_outliers(
                    state["table"],
                    columns,
                    policy=self.config.OUTLIER_POLICY,
                    stats=stats,
                    iqr_multiplier=self.config.IQR_MULTIPLIER,
                    max_passes=self.config.MAX_OUTLIER_PASSES,
                )
                step.log_metric("outliers_removed", result.affected)
                step.log_metric("passes", result.passes)
                if not result.converged:
                    step.log_progress(f"stopped after {result.passes} passes; outliers remain")

            unit = "cells" if result.policy == 'replace' else "rows"
            return {
                "table": result.table,
                "counters": {'outliers_removed': result.affected},
                "outliers_converged": result.converged,
                "completed_stages": ["resolve_outliers"],
                "execution_log": [
                    f"Resolved outliers ({result.policy}): {result.affected} {unit}"
                    + ("" if result.converged else f", not converged after {result.passes} passes")
                ],
            }
        except Exception as e:
            logger.error(f"Outlier resolution failed: {str(e)}")
            return {"errors": [f"Outlier resolution error: {str(e)}"]}

    def _normalize(self, state: PipelineState) -> dict:
        try:
            with PipelineLogger("normalize", logger):
                columns = self._numeric_columns(state)
                stats = compute_table_stats(state["table"], columns, self.config.IQR_MULTIPLIER)
                table = normalize(state["table"], columns, stats)

            return {
                "table": table,
                "completed_stages": ["normalize"],
                "execution_log": [f"Standardised {len(columns)} numeric columns"],
            }
        except Exception as e:
            logger.error(f"Normalization failed: {str(e)}")
            return {"errors": [f"Normalization error: {str(e)}"]}

    def _encode_categoricals(self, state: PipelineState) -> dict:
        try:
            with PipelineLogger("encode_categoricals", logger):
                columns = columns_of_kind(state["kinds"], ColumnKind.CATEGORICAL)
                mappings = build_mappings(state["table"], columns)
                table = encode_table(state["table"], mappings, self.config.MISSING_CATEGORY_CODE)

            return {
                "table": table,
                "mappings": mappings,
                "completed_stages": ["encode_categoricals"],
                "execution_log": [f"Encoded {len(columns)} categorical columns"],
            }
        except Exception as e:
            logger.error(f"Categorical encoding failed: {str(e)}")
            return {"errors": [f"Categorical encoding error: {str(e)}"]}

    def _build_report(self, state: PipelineState) -> dict:
        report = build_report(
            state["table"] if state.get("table") is not None else Table([]),
            state.get("kinds") or {},
            state.get("counters") or {},
            state.get("mappings") or {},
            state.get("completed_stages") or [],
            outlier_policy=self.config.OUTLIER_POLICY,
            skipped_columns=state.get("skipped_columns") or [],
            outliers_converged=state.get("outliers_converged", True),
        )
        return {
            "report": report,
            "execution_log": [f"Report built: {report.samples} samples, ready={report.ready}"],
        }

    def run(self, raw: RawTable) -> PipelineResult:
        """Run every stage over ``raw`` and return the cleaned table and report"""
        initial_state = PipelineState(
            raw=raw,
            counters={},
            skipped_columns=[],
            completed_stages=[],
            errors=[],
            execution_log=[f"Pipeline started at {datetime.now()}"],
        )

        logger.info(f"Cleaning {len(raw)} rows x {len(raw.columns)} columns")
        final_state = self.compiled_graph.invoke(initial_state)

        table = final_state.get("table")
        if table is None:
            table = Table([])
        result = PipelineResult(
            table=table,
            report=final_state["report"],
            labels=extract_labels(table),
            kinds=final_state.get("kinds") or {},
            mappings=final_state.get("mappings") or {},
            errors=list(final_state.get("errors") or []),
            execution_log=list(final_state.get("execution_log") or []),
        )

        if result.ok:
            logger.info(f"Pipeline completed: {result.report.to_dict()}")
        else:
            logger.error(f"Pipeline finished with errors: {result.errors}")

        return result

    def run_csv(self, csv_text: str, has_header: Optional[bool] = None) -> PipelineResult:
        return self.run(load_csv_text(csv_text, has_header=has_header))


@log_execution_time
def clean_table(raw: Union[RawTable, str], config: Optional[CleaningConfig] = None) -> Tuple[Table, CleansingReport]:
    """Pure entry point: (table, config) -> (cleaned table, report).

    Raises:
        PipelineError: if any stage failed
    """
    if isinstance(raw, str):
        raw = load_csv_text(raw)

    result = CleansingPipeline(config).run(raw)
    if not result.ok:
        raise PipelineError("Cleansing pipeline failed", details="; ".join(result.errors))
    return result.table, result.report
