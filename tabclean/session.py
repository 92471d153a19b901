# tabclean/session.py
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tabclean.config import CleaningConfig
from tabclean.exceptions import InvalidInputError, PipelineError
from tabclean.pipeline import CleansingPipeline, PipelineResult, extract_labels
from tabclean.stages.classifier import build_table, classify_columns, columns_of_kind
from tabclean.stages.encoder import CategoricalMapping, encode_table
from tabclean.stages.normalizer import rescale
from tabclean.stages.outliers import resolve_outliers
from tabclean.stages.report import CleansingReport
from tabclean.table import MISSING, ColumnKind, RawTable, Table, load_csv_text

logger = logging.getLogger(__name__)


@dataclass
class DatasetState:
    """One uploaded dataset and what has been done to it"""
    raw: Optional[RawTable] = None
    table: Optional[Table] = None
    labels: List[Optional[float]] = field(default_factory=list)
    kinds: Dict[str, ColumnKind] = field(default_factory=dict)
    cleaned: bool = False


class DashboardSession:
    """Dataset state for one dashboard user.

    The caller owns the session and passes it where it is needed; nothing is
    shared between sessions. Cleaning goes through the same pipeline as the
    HTTP API.
    """

    def __init__(self, config: Optional[CleaningConfig] = None):
        self.config = config or CleaningConfig()
        self.dataset = DatasetState()
        self.report: Optional[CleansingReport] = None
        self.mappings: Dict[str, CategoricalMapping] = {}
        self.last_result: Optional[PipelineResult] = None

    @property
    def has_data(self) -> bool:
        return self.dataset.raw is not None

    def upload(self, csv_text: str, has_header: Optional[bool] = None) -> Table:
        """Replace the session dataset with freshly parsed CSV; not yet cleaned"""
        raw = load_csv_text(csv_text, has_header=has_header)
        kinds = classify_columns(raw, self.config.CLASSIFY_SAMPLE_ROWS)
        table, _ = build_table(raw, kinds)

        self.dataset = DatasetState(raw=raw, table=table, labels=extract_labels(table), kinds=kinds, cleaned=False)
        self.report = None
        self.mappings = {}
        self.last_result = None

        logger.info(f"Uploaded dataset: {len(table)} rows, {len(table.columns)} columns")
        return table

    def _require_data(self):
        if not self.has_data:
            raise InvalidInputError("No dataset uploaded")

    def clean(self, config: Optional[CleaningConfig] = None) -> CleansingReport:
        """Run the full pipeline over the uploaded (raw) dataset"""
        self._require_data()

        result = CleansingPipeline(config or self.config).run(self.dataset.raw)
        if not result.ok:
            raise PipelineError("Cleansing pipeline failed", details="; ".join(result.errors))

        self.dataset.table = result.table
        self.dataset.labels = result.labels
        self.dataset.kinds = result.kinds
        self.dataset.cleaned = True
        self.report = result.report
        self.mappings = result.mappings
        self.last_result = result
        return result.report

    def drop_missing(self) -> int:
        """Remove rows with any missing value, label included. Returns rows removed."""
        self._require_data()

        table = self.dataset.table
        keep = [all(cell is not MISSING for cell in row.values()) for row in table.rows]
        self.dataset.table = table.filter_rows(keep)
        self.dataset.labels = extract_labels(self.dataset.table)
        self.dataset.cleaned = True

        removed = len(table) - len(self.dataset.table)
        logger.info(f"Dropped {removed} rows with missing values")
        return removed

    def _numeric_columns(self) -> List[str]:
        return columns_of_kind(self.dataset.kinds, ColumnKind.NUMERIC)

    def normalize(self, method: str = 'zscore') -> Table:
        """Rescale the numeric columns of the current table in place.

        ``zscore`` standardises with population stats; ``minmax`` maps each
        column onto [0, 1], a constant column becoming all zeros.
        """
        self._require_data()

        self.dataset.table = rescale(self.dataset.table, self._numeric_columns(), method)
        self.dataset.cleaned = True

        logger.info(f"Normalised {len(self._numeric_columns())} numeric columns ({method})")
        return self.dataset.table

    def remove_outliers(self, policy: str = 'drop') -> int:
        """Resolve IQR outliers in the current table. Returns rows dropped or cells replaced."""
        self._require_data()

        result = resolve_outliers(
            self.dataset.table,
            self._numeric_columns(),
            policy=policy,
            iqr_multiplier=self.config.IQR_MULTIPLIER,
            max_passes=self.config.MAX_OUTLIER_PASSES,
        )
        self.dataset.table = result.table
        self.dataset.labels = extract_labels(result.table)
        self.dataset.cleaned = True
        return result.affected

    def preview(self, n: int = 10) -> str:
        """Header plus the first ``n`` rows of the current table as CSV text"""
        self._require_data()
        return self.dataset.table.head(n).to_csv()

    def encode_view(self, raw: RawTable) -> Table:
        """Apply this session's categorical mappings to another copy of the data.

        Values the mappings have never seen are passed through as text.
        """
        table, _ = build_table(raw, classify_columns(raw, self.config.CLASSIFY_SAMPLE_ROWS))
        return encode_table(table, self.mappings, self.config.MISSING_CATEGORY_CODE)

    def to_csv(self) -> str:
        """Current table as CSV text"""
        self._require_data()
        return self.dataset.table.to_csv()
