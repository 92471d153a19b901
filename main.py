import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from tabclean.config import LABEL_POLICIES, OUTLIER_POLICIES, get_config
from tabclean.exceptions import CleaningError
from tabclean.pipeline import CleansingPipeline
from tabclean.table import load_csv_file
from tabclean.utils.logging_config import setup_logging

def main():
    """Main entry point for the cleaning CLI"""
    parser = argparse.ArgumentParser(description="Clean a tabular CSV dataset")
    parser.add_argument("--data-path", required=True, help="Path to the CSV dataset (last column is the label)")
    parser.add_argument("--outlier-policy", choices=OUTLIER_POLICIES, help="Replace outliers or drop their rows")
    parser.add_argument("--label-policy", choices=LABEL_POLICIES, help="Keep or drop rows with a missing label")
    parser.add_argument("--no-header", action="store_true", help="The first row is data, not column names")
    parser.add_argument("--output", help="Where to write the cleaned CSV")
    parser.add_argument("--report", help="Where to write the cleansing report (JSON)")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--log-level", default=None, help="Logging level")

    args = parser.parse_args()

    # Load configuration
    config = get_config(args.config)
    config.create_directories()

    # Setup logging
    setup_logging(log_level=args.log_level or config.effective_log_level(), log_dir=str(config.paths.LOGS_DIR))

    issues = config.validate_config()
    if issues:
        print(f"❌ Invalid configuration: {'; '.join(issues)}")
        sys.exit(1)

    overrides = {}
    if args.outlier_policy:
        overrides["OUTLIER_POLICY"] = args.outlier_policy
    if args.label_policy:
        overrides["LABEL_POLICY"] = args.label_policy
    cleaning_config = replace(config.cleaning, **overrides)

    try:
        raw = load_csv_file(
            args.data_path,
            max_file_size_mb=config.data_validation.MAX_FILE_SIZE_MB,
            supported_formats=config.data_validation.SUPPORTED_FILE_FORMATS,
            has_header=False if args.no_header else None,
        )
        result = CleansingPipeline(cleaning_config).run(raw)
    except CleaningError as e:
        print(f"❌ {e.message}" + (f": {e.details}" if e.details else ""))
        sys.exit(1)

    if not result.ok:
        print(f"❌ Cleaning failed: {'; '.join(result.errors)}")
        sys.exit(1)

    report = result.report.to_dict()

    if args.output:
        Path(args.output).write_text(result.table.to_csv(), encoding='utf-8')
        print(f"Cleaned data written to {args.output}")

    if args.report:
        with open(args.report, 'w') as f:
            json.dump(report, f, indent=2)
        print(f"Report written to {args.report}")

    print("🎉 Cleaning completed!")
    print(f"Samples: {report['samples']}  Features: {report['features']}")
    print(f"Missing filled: {report['missingFilled']}  Outliers removed: {report['outliersRemoved']}")
    print(f"Ready: {report['ready']}")

if __name__ == "__main__":
    main()
