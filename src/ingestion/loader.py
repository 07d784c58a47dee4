"""
Data ingestion components for the analytics pipeline.
"""
import os
import logging
import traceback
import pandas as pd
from sqlalchemy import inspect
from db.models import SOURCE_TABLES
from ingestion.snapshot import DataSnapshot, COLLECTION_COLUMNS

logger = logging.getLogger(__name__)

# Source file for each collection
CSV_FILES = {
    'customers': 'customers.csv',
    'restaurants': 'restaurants.csv',
    'riders': 'riders.csv',
    'delivery': 'delivery.csv',
    'orders': 'orders.csv',
}

# Data types applied after column names are standardized
COLLECTION_DTYPES = {
    'customers': {
        'customer_id': 'Int64',
        'customer_name': 'str',
        'contact': 'str',
        'location': 'str'
    },
    'restaurants': {
        'restaurant_id': 'Int64',
        'restaurant_name': 'str',
        'cuisine': 'str',
        'rating': 'float',
        'location': 'str'
    },
    'riders': {
        'rider_id': 'Int64',
        'rider_name': 'str',
        'vehicle_type': 'str',
        'contact': 'str'
    },
    'delivery': {
        'deliverer_id': 'Int64',
        'rider_id': 'Int64'
    },
    'orders': {
        'order_id': 'Int64',
        'customer_id': 'Int64',
        'restaurant_id': 'Int64',
        'deliverer_id': 'Int64',
        'order_amount': 'float',
        'payment_method': 'str',
        'order_status': 'str'
    },
}

# Alternative spellings seen in source extracts
COLUMN_MAPPING = {
    'customers': {
        'name': 'customer_name',
        'customerid': 'customer_id',
        'customer id': 'customer_id',
    },
    'restaurants': {
        'name': 'restaurant_name',
        'restaurantid': 'restaurant_id',
        'restaurant id': 'restaurant_id',
    },
    'riders': {
        'name': 'rider_name',
        'riderid': 'rider_id',
        'rider id': 'rider_id',
        'vehicle': 'vehicle_type',
        'vehicletype': 'vehicle_type',
    },
    'delivery': {
        'delivererid': 'deliverer_id',
        'deliverer id': 'deliverer_id',
        'riderid': 'rider_id',
        'rider id': 'rider_id',
    },
    'orders': {
        'orderid': 'order_id',
        'order id': 'order_id',
        'customerid': 'customer_id',
        'restaurantid': 'restaurant_id',
        'delivererid': 'deliverer_id',
        'orderdate': 'order_date',
        'order date': 'order_date',
        'amount': 'order_amount',
        'orderamount': 'order_amount',
        'paymentmethod': 'payment_method',
        'status': 'order_status',
        'orderstatus': 'order_status',
    },
}

def standardize_columns(df, collection):
    """
    Strip and lower-case column names, then map known alternative spellings
    onto the canonical names for the collection.
    """
    df = df.rename(columns=lambda x: x.strip().lower() if isinstance(x, str) else x)

    df_mapping = {}
    for old_col, new_col in COLUMN_MAPPING.get(collection, {}).items():
        # Only rename if the canonical column isn't already present
        if old_col in df.columns and new_col not in df.columns:
            df_mapping[old_col] = new_col

    if df_mapping:
        logger.info(f"Standardizing column names in '{collection}': {df_mapping}")
        df = df.rename(columns=df_mapping)

    return df

def _apply_dtypes(df, collection):
    for col, dtype in COLLECTION_DTYPES[collection].items():
        if col not in df.columns:
            continue
        if dtype == 'str':
            # Keep missing values as NaN rather than the string 'nan'
            df[col] = df[col].where(df[col].isnull(), df[col].astype(str))
        else:
            df[col] = df[col].astype(dtype)
    return df

def read_csv_collection(file_path, collection):
    """
    Read one source CSV file into a DataFrame with canonical columns.
    """
    logger.info(f"Loading {collection} from {file_path}")

    if not os.path.exists(file_path):
        logger.error(f"File not found: {file_path}")
        raise FileNotFoundError(file_path)

    df = pd.read_csv(file_path)
    logger.info(f"Loaded {len(df)} rows from {file_path}")

    df = standardize_columns(df, collection)

    missing_columns = set(COLLECTION_COLUMNS[collection]) - set(df.columns)
    if missing_columns:
        logger.warning(f"{file_path} is missing columns: {sorted(missing_columns)}")

    missing_values = df.isnull().sum().sum()
    if missing_values > 0:
        logger.warning(f"Found {missing_values} missing values in {file_path}")

    return _apply_dtypes(df, collection)

def load_snapshot_from_csv(config):
    """
    Load all source CSV files from the configured input directory.

    Returns:
        DataSnapshot: Snapshot of the five collections
    """
    try:
        frames = {
            collection: read_csv_collection(config.get_input_path(filename), collection)
            for collection, filename in CSV_FILES.items()
        }
        snapshot = DataSnapshot.from_frames(frames)
        logger.info(f"Snapshot loaded from CSV: {snapshot.row_counts()}")
        return snapshot
    except Exception as e:
        logger.error(f"Failed to load snapshot from CSV: {str(e)}")
        logger.error(traceback.format_exc())
        raise

def load_snapshot_from_database(engine):
    """
    Read the five source tables through a SQLAlchemy engine.

    Returns:
        DataSnapshot: Snapshot of the five collections
    """
    try:
        available_tables = set(inspect(engine).get_table_names())
        frames = {}
        for collection, model in SOURCE_TABLES.items():
            table_name = model.__tablename__
            if table_name not in available_tables:
                logger.warning(f"Table '{table_name}' not found, using an empty collection")
                continue
            df = pd.read_sql_table(table_name, engine)
            logger.info(f"Read {len(df)} rows from table {table_name}")
            frames[collection] = _apply_dtypes(standardize_columns(df, collection), collection)

        snapshot = DataSnapshot.from_frames(frames)
        logger.info(f"Snapshot loaded from database: {snapshot.row_counts()}")
        return snapshot
    except Exception as e:
        logger.error(f"Failed to load snapshot from database: {str(e)}")
        logger.error(traceback.format_exc())
        raise

def load_snapshot(config, engine=None):
    """
    Load the snapshot from the source named in the configuration.
    """
    source = config.get_source()
    if source == 'database':
        if engine is None:
            from db.engine import create_db_engine
            engine = create_db_engine(config)
        return load_snapshot_from_database(engine)
    return load_snapshot_from_csv(config)
