"""
Grouped order metrics for the analytics pipeline.
"""
import logging
import numpy as np
import pandas as pd
from errors import ConfigurationError

logger = logging.getLogger(__name__)

DELIVERED = 'Delivered'
CANCELLED = 'Cancelled'

JOIN_MODES = ('inner', 'left')

METRIC_COLUMNS = ['order_count', 'total_revenue', 'avg_order_value']

def filter_by_status(orders, status=None):
    """
    Filter orders on order_status.

    ``status`` may be None (no filter), a status string, a collection of
    statuses, or a predicate called with each status value.
    """
    if status is None:
        return orders
    if callable(status):
        mask = orders['order_status'].apply(status).astype(bool)
        return orders[mask]
    if isinstance(status, str):
        return orders[orders['order_status'] == status]
    return orders[orders['order_status'].isin(list(status))]

def aggregate_orders(orders, key, status=None, how='inner', entities=None, entity_key=None):
    """
    Count, sum and average order_amount per distinct key value.

    Args:
        orders (DataFrame): Orders with order_amount and order_status
        key (str): Column to group on
        status: Status filter, see filter_by_status
        how (str): 'inner' for keys present in the filtered orders only,
            'left' for one row per entity in ``entities``
        entities (DataFrame): Full entity list for 'left' mode
        entity_key (str): Key column in ``entities``, defaults to ``key``

    Returns:
        DataFrame: key, order_count, total_revenue, avg_order_value sorted by key
    """
    if how not in JOIN_MODES:
        raise ConfigurationError(f"Unsupported aggregation mode '{how}', expected one of {JOIN_MODES}")
    if how == 'left' and entities is None:
        raise ConfigurationError("Left aggregation needs the full entity list")

    included = filter_by_status(orders, status)
    included = included[included[key].notna()]

    grouped = included.groupby(key, sort=True).agg(
        order_count=('order_amount', 'size'),
        total_revenue=('order_amount', 'sum'),
        avg_order_value=('order_amount', 'mean'),
    ).reset_index()

    if how == 'inner':
        logger.debug(f"Aggregated {len(included)} orders into {len(grouped)} '{key}' groups")
        return grouped

    entity_key = entity_key or key
    keys = entities[[entity_key]].drop_duplicates()
    if entity_key != key:
        keys = keys.rename(columns={entity_key: key})

    result = pd.merge(keys, grouped, on=key, how='left')
    result['order_count'] = result['order_count'].fillna(0).astype('int64')
    result['total_revenue'] = result['total_revenue'].fillna(0.0)
    # avg_order_value stays null where there were no orders
    result = result.sort_values(key, kind='mergesort').reset_index(drop=True)

    logger.debug(f"Left-aggregated {len(included)} orders over {len(result)} entities")
    return result

def customer_aggregates(orders, as_of, status=DELIVERED, how='inner', customers=None):
    """
    Per-customer totals, average order value and recency.

    recency_days is the number of whole days between the last order and
    ``as_of``; both it and last_order_date are null for customers without
    orders (left mode only).
    """
    as_of = pd.Timestamp(as_of).normalize()

    metrics = aggregate_orders(
        orders, 'customer_id', status=status, how=how,
        entities=customers, entity_key='customer_id'
    )

    included = filter_by_status(orders, status)
    last_dates = (
        included.groupby('customer_id')['order_date']
        .max()
        .rename('last_order_date')
        .reset_index()
    )

    result = pd.merge(metrics, last_dates, on='customer_id', how='left')
    result = result.rename(columns={
        'order_count': 'total_orders',
        'avg_order_value': 'average_order_value'
    })
    result['last_order_date'] = pd.to_datetime(result['last_order_date'])
    result['recency_days'] = (as_of - result['last_order_date'].dt.normalize()).dt.days.astype('Int64')

    return result[[
        'customer_id', 'total_orders', 'total_revenue', 'average_order_value',
        'last_order_date', 'recency_days'
    ]]

def safe_ratio(numerator, denominator):
    """
    Element-wise ratio that is null where the denominator is zero.
    """
    denominator = denominator.astype('float64')
    return numerator / denominator.replace(0, np.nan)
