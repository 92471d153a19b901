# tabclean/stages/report.py
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from tabclean.stages.encoder import CategoricalMapping
from tabclean.table import ColumnKind, Table

# Stages that must all succeed before a dataset is ready for training
REQUIRED_STAGES = ('impute_missing', 'resolve_outliers', 'normalize')


@dataclass
class CleansingReport:
    samples: int = 0
    features: int = 0
    missing_filled: int = 0
    outliers_removed: int = 0
    categorical_mappings: Dict[str, List[str]] = field(default_factory=dict)
    ready: bool = False
    outlier_policy: str = 'replace'
    malformed_cells: int = 0
    missing_labels: int = 0
    dropped_label_rows: int = 0
    skipped_columns: List[str] = field(default_factory=list)
    outliers_converged: bool = True

    def to_dict(self) -> dict:
        """camelCase view, as consumed by the dashboard"""
        return {
            'samples': self.samples,
            'features': self.features,
            'missingFilled': self.missing_filled,
            'outliersRemoved': self.outliers_removed,
            'categoricalMappings': {name: list(values) for name, values in self.categorical_mappings.items()},
            'ready': self.ready,
            'outlierPolicy': self.outlier_policy,
            'malformedCells': self.malformed_cells,
            'missingLabels': self.missing_labels,
            'droppedLabelRows': self.dropped_label_rows,
            'skippedColumns': list(self.skipped_columns),
            'outliersConverged': self.outliers_converged,
        }


def build_report(table: Table, kinds: Dict[str, ColumnKind], counters: Dict[str, int],
                 mappings: Dict[str, CategoricalMapping], completed_stages: Iterable[str],
                 outlier_policy: str = 'replace', skipped_columns: Iterable[str] = (),
                 outliers_converged: bool = True) -> CleansingReport:
    """Assemble the report from stage counters and the final table shape.

    A table whose outlier replacement stopped at the pass cap still holds
    outliers and is not ready.
    """
    completed = set(completed_stages)
    ready = (
        len(table) > 0
        and all(stage in completed for stage in REQUIRED_STAGES)
        and outliers_converged
    )

    return CleansingReport(
        samples=len(table),
        features=sum(1 for kind in kinds.values() if kind == ColumnKind.NUMERIC),
        missing_filled=counters.get('missing_filled', 0),
        outliers_removed=counters.get('outliers_removed', 0),
        categorical_mappings={name: list(mapping.values) for name, mapping in mappings.items()},
        ready=ready,
        outlier_policy=outlier_policy,
        malformed_cells=counters.get('malformed_cells', 0),
        missing_labels=counters.get('missing_labels', 0),
        dropped_label_rows=counters.get('dropped_label_rows', 0),
        skipped_columns=sorted(set(skipped_columns)),
        outliers_converged=outliers_converged,
    )
