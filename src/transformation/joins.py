"""
Data joining operations for the analytics pipeline.
"""
import logging
import pandas as pd
from errors import DataIntegrityError

logger = logging.getLogger(__name__)

# Example values kept on each integrity error
MAX_EXAMPLES = 10

def check_order_references(orders, customers, restaurants, strict=False):
    """
    Exclude orders that point to a customer or restaurant that doesn't exist.

    Args:
        orders (DataFrame): Orders to validate
        customers (DataFrame): Known customers
        restaurants (DataFrame): Known restaurants
        strict (bool): If True, raise the first DataIntegrityError found

    Returns:
        tuple: (valid orders DataFrame, list of DataIntegrityError)
    """
    references = [
        ('orders.customer_id -> customers.customer_id', 'customer_id', customers),
        ('orders.restaurant_id -> restaurants.restaurant_id', 'restaurant_id', restaurants),
    ]

    valid_mask = pd.Series(True, index=orders.index)
    errors = []

    for relationship, column, ref_df in references:
        orphaned_mask = ~orders[column].isin(set(ref_df[column].dropna()))
        # Rows already excluded by an earlier relationship are not counted twice
        newly_orphaned = orphaned_mask & valid_mask
        orphaned_count = int(newly_orphaned.sum())

        if orphaned_count > 0:
            examples = orders.loc[newly_orphaned, column].drop_duplicates().head(MAX_EXAMPLES).tolist()
            error = DataIntegrityError(relationship, orphaned_count, examples)
            if strict:
                logger.error(str(error))
                raise error
            logger.warning(f"Referential integrity issue: {error}")
            errors.append(error)

        valid_mask &= ~orphaned_mask

    return orders.loc[valid_mask].copy(), errors

def attach_riders(orders, delivery, riders):
    """
    Add rider_id, rider_name and vehicle_type to orders through the delivery
    assignments. Orders whose deliverer has no rider keep null rider columns.
    """
    assignments = delivery[['deliverer_id', 'rider_id']].dropna(subset=['rider_id'])
    assignments = assignments.drop_duplicates(subset=['deliverer_id'], keep='first')

    with_riders = pd.merge(orders, assignments, on='deliverer_id', how='left')
    with_riders = pd.merge(
        with_riders,
        riders[['rider_id', 'rider_name', 'vehicle_type']],
        on='rider_id',
        how='left'
    )
    return with_riders

def join_order_details(orders, customers, restaurants, delivery=None, riders=None):
    """
    Join orders with customer, restaurant and (optionally) rider attributes.
    """
    details = pd.merge(
        orders,
        customers[['customer_id', 'customer_name', 'location']].rename(
            columns={'location': 'customer_location'}
        ),
        on='customer_id',
        how='left'
    )
    details = pd.merge(
        details,
        restaurants[['restaurant_id', 'restaurant_name', 'cuisine', 'rating', 'location']].rename(
            columns={'location': 'restaurant_location'}
        ),
        on='restaurant_id',
        how='left'
    )

    if delivery is not None and riders is not None:
        details = attach_riders(details, delivery, riders)

    logger.debug(f"Joined order details has {len(details)} rows")
    return details
