"""
Main pipeline orchestration for the food delivery analytics pipeline.
"""
import logging
import argparse
import time
import traceback
from datetime import datetime
from config import Config
from ingestion.loader import load_snapshot
from transformation.quality import run_data_quality_checks
from transformation.reports import run_reports
from loading.writer import export_results_to_csv, write_results_to_database

logger = logging.getLogger(__name__)

def run_pipeline(config_file='config.ini', source=None, quality_check=None, export_csv=None,
                 reports=None, as_of=None, write_database=False, engine=None):
    start_time = time.time()
    statistics = {
        'start_time': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        'status': 'failed',
        'stages': {},
    }

    try:
        logger.info("Starting analytics pipeline")

        # Load configuration
        config = Config(config_file)

        # Override config settings if provided
        if source is not None:
            config.config['PIPELINE']['source'] = source

        if quality_check is not None:
            config.config['PIPELINE']['quality_check'] = str(quality_check).lower()

        if export_csv is not None:
            config.config['PIPELINE']['export_csv'] = str(export_csv).lower()

        if as_of is not None:
            config.config['PIPELINE']['as_of_date'] = str(as_of)

        # Parameters are validated before anything is loaded
        report_params = config.get_report_parameters()
        report_params['strict'] = config.is_strict()
        report_names = reports or config.get_enabled_reports()
        run_source = config.get_source()

        logger.info(f"Pipeline mode: source={run_source}, quality_check={config.is_quality_check_enabled()}")

        needs_engine = run_source == 'database' or write_database
        if needs_engine and engine is None:
            from db.engine import create_db_engine
            engine = create_db_engine(config)

        # ---- Data Ingestion
        stage_start = time.time()
        snapshot = load_snapshot(config, engine)
        statistics['stages']['ingestion'] = {
            'source': run_source,
            'rows_processed': snapshot.row_counts(),
            'duration': time.time() - stage_start
        }

        # ---- Data Quality Checks
        if config.is_quality_check_enabled():
            stage_start = time.time()
            quality_results = run_data_quality_checks(snapshot)
            statistics['stages']['quality_check'] = {
                'duration': time.time() - stage_start,
                'issues_found': quality_results['total_issues']
            }

        # ---- Reports
        stage_start = time.time()
        results = run_reports(snapshot, names=report_names, params=report_params)
        statistics['stages']['reports'] = {
            'duration': time.time() - stage_start,
            'as_of_date': str(report_params['as_of'].date()),
            'rows_generated': {name: len(result) for name, result in results.items()},
            'skipped_orders': max((result.skipped_rows for result in results.values()), default=0)
        }

        # ---- Export
        if config.is_csv_export_enabled():
            exported_files = export_results_to_csv(results, config.get_output_path())
            statistics['stages']['export'] = {
                'files_exported': len(exported_files),
                'file_paths': exported_files
            }

        if write_database:
            stage_start = time.time()
            written = write_results_to_database(engine, results)
            statistics['stages']['loading'] = {
                'duration': time.time() - stage_start,
                'tables_written': len(written)
            }

        statistics['results'] = results
        statistics['status'] = 'success'
        logger.info("Analytics pipeline completed successfully")

    except Exception as e:
        logger.error(f"Pipeline execution failed: {str(e)}")
        logger.error(traceback.format_exc())
        statistics['status'] = 'failed'
        statistics['error'] = str(e)

    # Calculate total duration
    statistics['duration'] = time.time() - start_time

    return statistics

def main():
    """Command line entry point."""
    parser = argparse.ArgumentParser(description='Food Delivery Analytics Pipeline')
    parser.add_argument('--config', default='config.ini', help='Path to configuration file')
    parser.add_argument('--source', choices=['csv', 'database'], help='Where to read source records from')
    parser.add_argument('--quality-check', action='store_true', help='Run data quality checks')
    parser.add_argument('--no-quality-check', action='store_true', help='Skip data quality checks')
    parser.add_argument('--export-csv', action='store_true', help='Export results to CSV files')
    parser.add_argument('--write-database', action='store_true', help='Write results to report_* tables')
    parser.add_argument('--report', action='append', dest='reports', help='Report to run (repeatable, default all)')
    parser.add_argument('--as-of', help='Reference date for recency and inactivity (YYYY-MM-DD)')

    args = parser.parse_args()

    # Determine quality check mode
    quality_check = None
    if args.quality_check:
        quality_check = True
    elif args.no_quality_check:
        quality_check = False

    # Run the pipeline
    results = run_pipeline(
        config_file=args.config,
        source=args.source,
        quality_check=quality_check,
        export_csv=True if args.export_csv else None,
        reports=args.reports,
        as_of=args.as_of,
        write_database=args.write_database
    )

    # Print summary
    print("\nPipeline Execution Summary:")
    print(f"Status: {results['status']}")
    print(f"Duration: {results['duration']:.2f} seconds")

    if results['status'] == 'failed' and 'error' in results:
        print(f"Error: {results['error']}")

    for stage, stats in results.get('stages', {}).items():
        print(f"\n{stage.capitalize()} stage:")
        for key, value in stats.items():
            if key not in ('rows_processed', 'rows_generated', 'file_paths'):
                print(f"  {key}: {value}")

    return 0 if results['status'] == 'success' else 1

if __name__ == "__main__":
    raise SystemExit(main())
