"""
Data quality checks for the food delivery snapshot.

Checks only report; records are never rewritten here.
"""
import logging
import traceback

logger = logging.getLogger(__name__)

# Primary keys for each collection
PRIMARY_KEYS = {
    'customers': ['customer_id'],
    'restaurants': ['restaurant_id'],
    'riders': ['rider_id'],
    'delivery': ['deliverer_id'],
    'orders': ['order_id'],
}

# Expected value ranges
RANGE_CHECKS = {
    'orders': {
        'order_amount': lambda x: x >= 0,  # Amounts should be non-negative
    },
    'restaurants': {
        'rating': lambda x: (x >= 0) & (x <= 5),
    },
}

# Foreign key relationships
FOREIGN_KEYS = [
    {'table': 'orders', 'key': 'customer_id', 'ref_table': 'customers', 'ref_key': 'customer_id'},
    {'table': 'orders', 'key': 'restaurant_id', 'ref_table': 'restaurants', 'ref_key': 'restaurant_id'},
    {'table': 'orders', 'key': 'deliverer_id', 'ref_table': 'delivery', 'ref_key': 'deliverer_id'},
    {'table': 'delivery', 'key': 'rider_id', 'ref_table': 'riders', 'ref_key': 'rider_id'},
]

def run_data_quality_checks(snapshot):
    """
    Run a series of data quality checks on the snapshot.

    Returns:
        dict: Results per check, plus 'total_issues'
    """
    try:
        logger.info("Running data quality checks")

        data_frames = snapshot.as_dict()
        quality_results = {
            'missing_values': check_missing_values(data_frames),
            'duplicate_keys': check_duplicate_keys(data_frames),
            'value_ranges': check_value_ranges(data_frames),
            'referential_integrity': check_referential_integrity(data_frames),
            'unassigned_deliveries': check_unassigned_deliveries(data_frames),
        }

        total_issues = count_issues(quality_results)
        quality_results['total_issues'] = total_issues

        if total_issues > 0:
            logger.warning(f"Found a total of {total_issues} data quality issues")
        else:
            logger.info("All data quality checks passed")

        return quality_results
    except Exception as e:
        logger.error(f"Error running data quality checks: {str(e)}")
        logger.error(traceback.format_exc())
        raise

def count_issues(quality_results):
    """
    Sum the issue counts reported by the individual checks.
    """
    total = 0
    for result in quality_results.get('missing_values', {}).values():
        total += result['total_missing']
    for result in quality_results.get('duplicate_keys', {}).values():
        total += result.get('duplicate_count', 0)
    for column_results in quality_results.get('value_ranges', {}).values():
        for result in column_results.values():
            total += result.get('invalid_count', 0)
    for result in quality_results.get('referential_integrity', {}).values():
        total += result.get('orphaned_count', 0)
    total += quality_results.get('unassigned_deliveries', {}).get('unassigned_count', 0)
    return total

def check_missing_values(data_frames):
    """
    Check for missing values in each DataFrame.
    """
    results = {}

    for table_name, df in data_frames.items():
        missing_by_column = df.isnull().sum()
        total_missing = int(missing_by_column.sum())

        # Only include columns with missing values
        missing_columns = {
            col: int(count) for col, count in missing_by_column[missing_by_column > 0].items()
        }

        results[table_name] = {
            'total_missing': total_missing,
            'missing_columns': missing_columns
        }

        if total_missing > 0:
            logger.warning(f"Table '{table_name}' has {total_missing} missing values")
            for col, count in missing_columns.items():
                logger.warning(f"  - Column '{col}': {count} missing values")

    return results

def check_duplicate_keys(data_frames):
    """
    Check for duplicate primary keys in each DataFrame.
    """
    results = {}

    for table_name, df in data_frames.items():
        pk_columns = PRIMARY_KEYS.get(table_name)
        if pk_columns is None:
            results[table_name] = {'duplicate_count': 0, 'error': 'No primary key defined'}
            continue

        if not all(col in df.columns for col in pk_columns):
            results[table_name] = {
                'duplicate_count': 0,
                'error': f"Not all primary key columns {pk_columns} exist in table"
            }
            continue

        duplicates = df[df.duplicated(subset=pk_columns, keep=False)]
        duplicate_count = len(duplicates)

        results[table_name] = {
            'duplicate_count': duplicate_count,
            'duplicate_keys': duplicates[pk_columns].head(10).values.tolist() if duplicate_count > 0 else []
        }

        if duplicate_count > 0:
            logger.warning(f"Table '{table_name}' has {duplicate_count} duplicate primary keys")

    return results

def check_value_ranges(data_frames):
    """
    Check for values outside of expected ranges. Missing values are
    reported by check_missing_values and are not counted here.
    """
    results = {}

    for table_name, checks in RANGE_CHECKS.items():
        if table_name not in data_frames:
            continue
        df = data_frames[table_name]
        table_results = {}

        for column, condition in checks.items():
            if column not in df.columns:
                table_results[column] = {'error': f"Column '{column}' not found in table"}
                continue

            values = df[column]
            invalid_mask = values.notna() & ~condition(values)
            invalid_count = int(invalid_mask.sum())

            table_results[column] = {
                'invalid_count': invalid_count,
                'invalid_examples': df.loc[invalid_mask, column].head(5).tolist() if invalid_count > 0 else []
            }

            if invalid_count > 0:
                logger.warning(f"Table '{table_name}' has {invalid_count} invalid values in column '{column}'")

        results[table_name] = table_results

    return results

def check_referential_integrity(data_frames):
    """
    Check referential integrity between tables. Null foreign keys are not
    treated as orphans.
    """
    results = {}

    for fk in FOREIGN_KEYS:
        relationship = f"{fk['table']}.{fk['key']} -> {fk['ref_table']}.{fk['ref_key']}"

        if not (fk['table'] in data_frames and fk['ref_table'] in data_frames and
                fk['key'] in data_frames[fk['table']].columns and
                fk['ref_key'] in data_frames[fk['ref_table']].columns):
            results[relationship] = {'error': 'Missing table or column'}
            continue

        fk_values = data_frames[fk['table']][fk['key']].dropna()
        ref_values = set(data_frames[fk['ref_table']][fk['ref_key']].dropna())

        orphaned_mask = ~fk_values.isin(ref_values)
        orphaned_count = int(orphaned_mask.sum())
        orphaned = fk_values[orphaned_mask].drop_duplicates()

        results[relationship] = {
            'orphaned_count': orphaned_count,
            'orphaned_examples': orphaned.head(10).tolist() if orphaned_count > 0 else []
        }

        if orphaned_count > 0:
            logger.warning(
                f"Referential integrity issue: {orphaned_count} rows in "
                f"{fk['table']}.{fk['key']} have no matching {fk['ref_table']}.{fk['ref_key']}"
            )

    return results

def check_unassigned_deliveries(data_frames):
    """
    Count delivery assignments without a rider.
    """
    delivery = data_frames.get('delivery')
    if delivery is None or 'rider_id' not in delivery.columns:
        return {'unassigned_count': 0, 'error': 'Missing table or column'}

    unassigned = delivery[delivery['rider_id'].isnull()]
    unassigned_count = len(unassigned)

    if unassigned_count > 0:
        logger.warning(f"Found {unassigned_count} delivery assignments with no rider")

    return {
        'unassigned_count': unassigned_count,
        'unassigned_examples': unassigned['deliverer_id'].head(10).tolist() if unassigned_count > 0 else []
    }
