"""
Export components for the analytics pipeline.
"""
import os
import logging
import traceback
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

REPORT_TABLE_PREFIX = 'report_'

def export_results_to_csv(results, output_dir):
    """
    Export report results to CSV files, one per non-empty report.

    Args:
        results (dict): report name -> ReportResult
        output_dir (str): Target directory

    Returns:
        dict: report name -> written file path
    """
    try:
        # Create output directory if it doesn't exist
        if not os.path.exists(output_dir):
            os.makedirs(output_dir)

        exported_files = {}

        for name, result in results.items():
            if result is None or len(result) == 0:
                logger.warning(f"No rows to export for report {name}")
                continue
            file_path = os.path.join(output_dir, f"{name}.csv")
            result.frame.to_csv(file_path, index=False)
            exported_files[name] = file_path
            logger.info(f"Exported {len(result)} rows to {file_path}")

        return exported_files
    except Exception as e:
        logger.error(f"Error exporting results to CSV: {str(e)}")
        logger.error(traceback.format_exc())
        raise

def write_results_to_database(engine, results, chunk_size=100):
    """
    Write each report to its own table, replacing any previous contents.

    Args:
        engine: SQLAlchemy engine
        results (dict): report name -> ReportResult
        chunk_size (int): Rows per insert batch

    Returns:
        dict: report name -> table name
    """
    written = {}
    for name, result in results.items():
        table_name = f"{REPORT_TABLE_PREFIX}{name}"
        try:
            result.frame.to_sql(
                table_name,
                engine,
                if_exists='replace',
                index=False,
                chunksize=chunk_size
            )
            written[name] = table_name
            logger.info(f"Successfully loaded {len(result)} rows to {table_name}")
        except SQLAlchemyError as e:
            logger.error(f"Error loading to {table_name}: {str(e)}")
            logger.error(traceback.format_exc())
            raise
    return written
