"""
Business reports for the food delivery analytics pipeline.

Every report is a pure function of a DataSnapshot and its parameters and
returns a ReportResult. Orders that reference unknown customers or
restaurants are excluded up front and counted on the result.
"""
import inspect
import logging
import numbers
import traceback
from dataclasses import dataclass, field
import pandas as pd
from errors import ConfigurationError
from transformation.aggregation import (
    DELIVERED,
    CANCELLED,
    aggregate_orders,
    customer_aggregates,
    filter_by_status,
    safe_ratio,
)
from transformation.joins import check_order_references, attach_riders, join_order_details
from transformation.ranking import dense_rank, dense_rank_within, top_n
from transformation.segmentation import (
    score_rfm,
    classify_tiers,
    segment_summary,
    tier_summary as summarize_tiers,
)

logger = logging.getLogger(__name__)

REPORTS = {}

@dataclass
class ReportResult:
    """Ordered result rows of one report plus the integrity issues met."""
    name: str
    frame: pd.DataFrame
    integrity_errors: list = field(default_factory=list)

    @property
    def skipped_rows(self):
        return sum(error.skipped_rows for error in self.integrity_errors)

    def __len__(self):
        return len(self.frame)

    def rows(self):
        """Result rows as a list of column -> value dicts, nulls as None."""
        frame = self.frame.astype(object)
        return frame.where(frame.notna(), None).to_dict('records')

    def to_csv(self):
        return self.frame.to_csv(index=False)

def report(name):
    """Register a report function under ``name``."""
    def decorator(func):
        REPORTS[name] = func
        func.report_name = name
        return func
    return decorator

def _require_non_negative(**params):
    for param, value in params.items():
        if isinstance(value, bool) or not isinstance(value, numbers.Number) or value < 0:
            raise ConfigurationError(f"{param} must be a non-negative number, got {value!r}")

def _resolve_as_of(as_of):
    if as_of is None:
        return pd.Timestamp.today().normalize()
    try:
        timestamp = pd.Timestamp(as_of)
    except (ValueError, TypeError):
        raise ConfigurationError(f"Invalid as_of date {as_of!r}")
    if pd.isna(timestamp):
        raise ConfigurationError(f"Invalid as_of date {as_of!r}")
    return timestamp.normalize()

def _valid_orders(snapshot, strict):
    return check_order_references(
        snapshot.orders, snapshot.customers, snapshot.restaurants, strict=strict
    )

def _with_customers(frame, snapshot, columns=('customer_name',)):
    customers = snapshot.customers[['customer_id', *columns]].drop_duplicates(subset=['customer_id'])
    return pd.merge(frame, customers, on='customer_id', how='left')

def _with_restaurants(frame, snapshot, columns=('restaurant_name',)):
    restaurants = snapshot.restaurants[['restaurant_id', *columns]].drop_duplicates(subset=['restaurant_id'])
    return pd.merge(frame, restaurants, on='restaurant_id', how='left')

def _sorted(frame, by, ascending):
    return frame.sort_values(by, ascending=ascending, kind='mergesort').reset_index(drop=True)

def _money(series):
    return series.round(2)

# Customer rankings

@report('top_customers_by_orders')
def top_customers_by_orders(snapshot, n=5, status=DELIVERED, strict=False):
    """Customers with the most orders, dense-ranked, ties at rank n kept."""
    _require_non_negative(n=n)
    orders, errors = _valid_orders(snapshot, strict)

    counts = aggregate_orders(orders, 'customer_id', status=status)
    ranked = top_n(counts, 'order_count', n, tiebreak='customer_id')
    ranked = _with_customers(ranked, snapshot)

    return ReportResult(
        'top_customers_by_orders',
        ranked[['rank', 'customer_id', 'customer_name', 'order_count']],
        errors
    )

@report('top_customers_by_spend')
def top_customers_by_spend(snapshot, n=5, strict=False):
    """Customers with the highest delivered revenue."""
    _require_non_negative(n=n)
    orders, errors = _valid_orders(snapshot, strict)

    totals = aggregate_orders(orders, 'customer_id', status=DELIVERED)
    totals['total_revenue'] = _money(totals['total_revenue'])
    ranked = top_n(totals, 'total_revenue', n, tiebreak='customer_id')
    ranked = _with_customers(ranked, snapshot)

    return ReportResult(
        'top_customers_by_spend',
        ranked[['rank', 'customer_id', 'customer_name', 'total_revenue', 'order_count']],
        errors
    )

@report('customer_cancellation_rate')
def customer_cancellation_rate(snapshot, strict=False):
    """
    Share of each customer's orders that were cancelled. Customers without
    any order are left out rather than reported at 0%.
    """
    orders, errors = _valid_orders(snapshot, strict)

    totals = aggregate_orders(orders, 'customer_id')[['customer_id', 'order_count']]
    cancelled = aggregate_orders(orders, 'customer_id', status=CANCELLED)[['customer_id', 'order_count']]

    rates = pd.merge(
        totals.rename(columns={'order_count': 'total_orders'}),
        cancelled.rename(columns={'order_count': 'cancelled_orders'}),
        on='customer_id',
        how='left'
    )
    rates['cancelled_orders'] = rates['cancelled_orders'].fillna(0).astype('int64')
    rates['cancellation_rate_pct'] = (
        safe_ratio(rates['cancelled_orders'], rates['total_orders']) * 100
    ).round(2)

    rates = _with_customers(rates, snapshot)
    rates = _sorted(rates, ['cancellation_rate_pct', 'customer_id'], [False, True])

    return ReportResult(
        'customer_cancellation_rate',
        rates[['customer_id', 'customer_name', 'total_orders', 'cancelled_orders', 'cancellation_rate_pct']],
        errors
    )

@report('inactive_customers')
def inactive_customers(snapshot, as_of=None, inactive_days=90, strict=False):
    """
    Customers whose last order of any status is strictly older than
    ``inactive_days`` before ``as_of``, plus customers who never ordered.
    A last order exactly ``inactive_days`` ago is not inactive.
    """
    _require_non_negative(inactive_days=inactive_days)
    as_of = _resolve_as_of(as_of)
    orders, errors = _valid_orders(snapshot, strict)

    activity = customer_aggregates(
        orders, as_of, status=None, how='left', customers=snapshot.customers
    )
    cutoff = as_of - pd.Timedelta(days=inactive_days)
    last_order_day = activity['last_order_date'].dt.normalize()
    inactive = activity[last_order_day.isnull() | (last_order_day < cutoff)]

    inactive = _with_customers(inactive, snapshot, columns=('customer_name', 'location'))
    inactive = inactive.rename(columns={'recency_days': 'days_since_last_order'})
    inactive = inactive.sort_values(
        ['last_order_date', 'customer_id'], na_position='first', kind='mergesort'
    ).reset_index(drop=True)

    logger.info(f"{len(inactive)} customers inactive for more than {inactive_days} days")
    return ReportResult(
        'inactive_customers',
        inactive[['customer_id', 'customer_name', 'location', 'last_order_date', 'days_since_last_order']],
        errors
    )

@report('high_value_low_frequency')
def high_value_low_frequency(snapshot, max_orders=3, min_spend=3000, strict=False):
    """
    Customers with at most ``max_orders`` delivered orders whose delivered
    spend is strictly above ``min_spend``.
    """
    _require_non_negative(max_orders=max_orders, min_spend=min_spend)
    orders, errors = _valid_orders(snapshot, strict)

    totals = aggregate_orders(orders, 'customer_id', status=DELIVERED)
    totals['total_revenue'] = _money(totals['total_revenue'])
    totals['avg_order_value'] = _money(totals['avg_order_value'])

    selected = totals[(totals['order_count'] <= max_orders) & (totals['total_revenue'] > min_spend)]
    selected = _with_customers(selected, snapshot)
    selected = _sorted(selected, ['total_revenue', 'customer_id'], [False, True])

    return ReportResult(
        'high_value_low_frequency',
        selected[['customer_id', 'customer_name', 'order_count', 'total_revenue', 'avg_order_value']],
        errors
    )

@report('customer_lifetime_value')
def customer_lifetime_value(snapshot, as_of=None, strict=False):
    """Delivered totals, average order value and recency per customer."""
    as_of = _resolve_as_of(as_of)
    orders, errors = _valid_orders(snapshot, strict)

    aggregates = customer_aggregates(orders, as_of, status=DELIVERED)
    aggregates['total_revenue'] = _money(aggregates['total_revenue'])
    aggregates['average_order_value'] = _money(aggregates['average_order_value'])
    aggregates = _with_customers(aggregates, snapshot)
    aggregates = _sorted(aggregates, ['total_revenue', 'customer_id'], [False, True])

    return ReportResult(
        'customer_lifetime_value',
        aggregates[[
            'customer_id', 'customer_name', 'total_orders', 'total_revenue',
            'average_order_value', 'last_order_date', 'recency_days'
        ]],
        errors
    )

# Revenue trends and breakdowns

@report('monthly_revenue_trend')
def monthly_revenue_trend(snapshot, strict=False):
    """Delivered revenue per calendar month with month-over-month growth."""
    orders, errors = _valid_orders(snapshot, strict)

    delivered = filter_by_status(orders, DELIVERED)
    delivered = delivered[delivered['order_date'].notna()].copy()
    delivered['month'] = delivered['order_date'].dt.to_period('M').astype(str)

    trend = aggregate_orders(delivered, 'month')
    trend['total_revenue'] = _money(trend['total_revenue'])
    trend['avg_order_value'] = _money(trend['avg_order_value'])
    trend['revenue_growth_pct'] = (
        safe_ratio(trend['total_revenue'].diff(), trend['total_revenue'].shift(1)) * 100
    ).round(2)

    return ReportResult(
        'monthly_revenue_trend',
        trend[['month', 'order_count', 'total_revenue', 'avg_order_value', 'revenue_growth_pct']],
        errors
    )

@report('payment_method_summary')
def payment_method_summary(snapshot, status=DELIVERED, strict=False):
    """Order count, revenue and average order value per payment method."""
    orders, errors = _valid_orders(snapshot, strict)

    usage = aggregate_orders(orders, 'payment_method', status=status)
    usage['total_revenue'] = _money(usage['total_revenue'])
    usage['avg_order_value'] = _money(usage['avg_order_value'])
    usage['usage_pct'] = (
        safe_ratio(usage['order_count'], pd.Series(usage['order_count'].sum(), index=usage.index)) * 100
    ).round(2)
    usage = _sorted(usage, ['order_count', 'payment_method'], [False, True])

    return ReportResult(
        'payment_method_summary',
        usage[['payment_method', 'order_count', 'usage_pct', 'total_revenue', 'avg_order_value']],
        errors
    )

@report('order_status_breakdown')
def order_status_breakdown(snapshot, strict=False):
    orders, errors = _valid_orders(snapshot, strict)

    breakdown = aggregate_orders(orders, 'order_status')[['order_status', 'order_count']]
    total = breakdown['order_count'].sum()
    breakdown['share_pct'] = (
        safe_ratio(breakdown['order_count'], pd.Series(total, index=breakdown.index)) * 100
    ).round(2)
    breakdown = _sorted(breakdown, ['order_count', 'order_status'], [False, True])

    return ReportResult('order_status_breakdown', breakdown, errors)

@report('customers_by_location')
def customers_by_location(snapshot):
    """Number of registered customers per location."""
    customers = snapshot.customers[snapshot.customers['location'].notna()]
    counts = (
        customers.groupby('location')['customer_id']
        .nunique()
        .reset_index(name='customer_count')
    )
    counts = _sorted(counts, ['customer_count', 'location'], [False, True])
    return ReportResult('customers_by_location', counts)

# Restaurants and cuisines

@report('restaurant_cancellations')
def restaurant_cancellations(snapshot, strict=False):
    """Restaurants with at least one cancelled order."""
    orders, errors = _valid_orders(snapshot, strict)

    cancelled = aggregate_orders(orders, 'restaurant_id', status=CANCELLED)
    cancelled = cancelled.rename(columns={'order_count': 'cancelled_orders'})
    cancelled = _with_restaurants(cancelled, snapshot)
    cancelled = _sorted(cancelled, ['cancelled_orders', 'restaurant_id'], [False, True])

    return ReportResult(
        'restaurant_cancellations',
        cancelled[['restaurant_id', 'restaurant_name', 'cancelled_orders']],
        errors
    )

@report('cuisine_average_rating')
def cuisine_average_rating(snapshot):
    """Average restaurant rating per cuisine."""
    restaurants = snapshot.restaurants[snapshot.restaurants['cuisine'].notna()]
    ratings = restaurants.groupby('cuisine').agg(
        restaurant_count=('restaurant_id', 'nunique'),
        avg_rating=('rating', 'mean'),
    ).reset_index()
    ratings['avg_rating'] = ratings['avg_rating'].round(2)
    ratings = _sorted(ratings, ['avg_rating', 'cuisine'], [False, True])
    return ReportResult('cuisine_average_rating', ratings)

@report('top_restaurants_by_revenue')
def top_restaurants_by_revenue(snapshot, n=5, strict=False):
    _require_non_negative(n=n)
    orders, errors = _valid_orders(snapshot, strict)

    totals = aggregate_orders(orders, 'restaurant_id', status=DELIVERED)
    totals['total_revenue'] = _money(totals['total_revenue'])
    ranked = top_n(totals, 'total_revenue', n, tiebreak='restaurant_id')
    ranked = _with_restaurants(ranked, snapshot, columns=('restaurant_name', 'cuisine'))

    return ReportResult(
        'top_restaurants_by_revenue',
        ranked[['rank', 'restaurant_id', 'restaurant_name', 'cuisine', 'total_revenue', 'order_count']],
        errors
    )

@report('restaurant_rank_by_location')
def restaurant_rank_by_location(snapshot, strict=False):
    """Dense rank of restaurants by delivered revenue within each location."""
    orders, errors = _valid_orders(snapshot, strict)

    totals = aggregate_orders(orders, 'restaurant_id', status=DELIVERED)
    totals['total_revenue'] = _money(totals['total_revenue'])
    totals = _with_restaurants(totals, snapshot, columns=('restaurant_name', 'location'))
    ranked = dense_rank_within(totals, 'location', 'total_revenue', tiebreak='restaurant_id')

    return ReportResult(
        'restaurant_rank_by_location',
        ranked[['location', 'rank', 'restaurant_id', 'restaurant_name', 'total_revenue', 'order_count']],
        errors
    )

@report('cuisine_popularity')
def cuisine_popularity(snapshot, strict=False):
    """Delivered orders per cuisine, dense-ranked by order count."""
    orders, errors = _valid_orders(snapshot, strict)

    details = join_order_details(orders, snapshot.customers, snapshot.restaurants)
    popularity = aggregate_orders(details, 'cuisine', status=DELIVERED)
    popularity['total_revenue'] = _money(popularity['total_revenue'])
    popularity['avg_order_value'] = _money(popularity['avg_order_value'])
    ranked = dense_rank(popularity, 'order_count', tiebreak='cuisine')

    return ReportResult(
        'cuisine_popularity',
        ranked[['rank', 'cuisine', 'order_count', 'total_revenue', 'avg_order_value']],
        errors
    )

# Riders

@report('rider_utilization')
def rider_utilization(snapshot, low_activity_threshold=5, strict=False):
    """
    Delivered orders per rider, including riders with none. Riders below
    ``low_activity_threshold`` deliveries are flagged.
    """
    _require_non_negative(low_activity_threshold=low_activity_threshold)
    orders, errors = _valid_orders(snapshot, strict)

    with_riders = attach_riders(orders, snapshot.delivery, snapshot.riders)
    usage = aggregate_orders(
        with_riders, 'rider_id', status=DELIVERED, how='left', entities=snapshot.riders
    )[['rider_id', 'order_count']].rename(columns={'order_count': 'delivery_count'})

    total = usage['delivery_count'].sum()
    usage['delivery_share_pct'] = (
        safe_ratio(usage['delivery_count'], pd.Series(total, index=usage.index)) * 100
    ).round(2)
    usage['low_activity'] = usage['delivery_count'] < low_activity_threshold

    riders = snapshot.riders[['rider_id', 'rider_name', 'vehicle_type']].drop_duplicates(subset=['rider_id'])
    usage = pd.merge(usage, riders, on='rider_id', how='left')
    usage = _sorted(usage, ['delivery_count', 'rider_id'], [False, True])

    low_count = int(usage['low_activity'].sum())
    if low_count:
        logger.info(f"{low_count} riders below {low_activity_threshold} deliveries")

    return ReportResult(
        'rider_utilization',
        usage[['rider_id', 'rider_name', 'vehicle_type', 'delivery_count', 'delivery_share_pct', 'low_activity']],
        errors
    )

@report('vehicle_type_summary')
def vehicle_type_summary(snapshot, strict=False):
    """Riders and delivered orders per vehicle type."""
    orders, errors = _valid_orders(snapshot, strict)

    riders = snapshot.riders[snapshot.riders['vehicle_type'].notna()]
    fleet = riders.groupby('vehicle_type')['rider_id'].nunique().reset_index(name='rider_count')

    with_riders = attach_riders(orders, snapshot.delivery, snapshot.riders)
    deliveries = aggregate_orders(
        with_riders, 'vehicle_type', status=DELIVERED, how='left', entities=fleet
    )[['vehicle_type', 'order_count']].rename(columns={'order_count': 'delivery_count'})

    summary = pd.merge(fleet, deliveries, on='vehicle_type', how='left')
    summary = _sorted(summary, ['delivery_count', 'vehicle_type'], [False, True])
    return ReportResult('vehicle_type_summary', summary, errors)

# Segmentation views

@report('rfm_segmentation')
def rfm_segmentation(snapshot, as_of=None, strict=False):
    """
    RFM scores and segment for every customer with a delivered order.
    Customers with no delivered order are not part of the view.
    """
    as_of = _resolve_as_of(as_of)
    orders, errors = _valid_orders(snapshot, strict)

    scored = score_rfm(customer_aggregates(orders, as_of, status=DELIVERED))
    scored['total_revenue'] = _money(scored['total_revenue'])
    scored = _with_customers(scored, snapshot)

    return ReportResult(
        'rfm_segmentation',
        scored[[
            'customer_id', 'customer_name', 'recency_days', 'total_orders', 'total_revenue',
            'r_score', 'f_score', 'm_score', 'rfm_total', 'segment'
        ]],
        errors
    )

@report('rfm_segment_summary')
def rfm_segment_summary(snapshot, as_of=None, strict=False):
    segmentation = rfm_segmentation(snapshot, as_of=as_of, strict=strict)
    return ReportResult(
        'rfm_segment_summary',
        segment_summary(segmentation.frame),
        segmentation.integrity_errors
    )

@report('customer_classification')
def customer_classification(snapshot, strict=False):
    """Gold / Silver / Bronze tier from delivered revenue."""
    orders, errors = _valid_orders(snapshot, strict)

    totals = aggregate_orders(orders, 'customer_id', status=DELIVERED).rename(
        columns={'order_count': 'total_orders'}
    )
    totals['total_revenue'] = _money(totals['total_revenue'])
    classified = _with_customers(classify_tiers(totals), snapshot)

    return ReportResult(
        'customer_classification',
        classified[['customer_id', 'customer_name', 'total_revenue', 'tier']],
        errors
    )

@report('tier_summary')
def tier_summary(snapshot, strict=False):
    classification = customer_classification(snapshot, strict=strict)
    return ReportResult(
        'tier_summary',
        summarize_tiers(classification.frame),
        classification.integrity_errors
    )

# Running reports

def run_report(name, snapshot, **params):
    """
    Run one registered report, passing only the parameters it accepts.
    """
    if name not in REPORTS:
        raise ConfigurationError(f"Unknown report '{name}'. Available: {sorted(REPORTS)}")

    func = REPORTS[name]
    accepted = inspect.signature(func).parameters
    kwargs = {key: value for key, value in params.items() if key in accepted}

    try:
        logger.info(f"Running report {name}")
        result = func(snapshot, **kwargs)
        if result.skipped_rows:
            logger.warning(f"Report {name} skipped {result.skipped_rows} orders with broken references")
        logger.info(f"Report {name} produced {len(result)} rows")
        return result
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error(f"Error running report {name}: {str(e)}")
        logger.error(traceback.format_exc())
        raise

def run_reports(snapshot, names=None, params=None):
    """
    Run a selection of reports (all by default).

    Unknown names and invalid parameters are rejected before any report runs.

    Returns:
        dict: report name -> ReportResult, in the order requested
    """
    names = list(names) if names else list(REPORTS)
    params = dict(params or {})

    unknown = [name for name in names if name not in REPORTS]
    if unknown:
        raise ConfigurationError(f"Unknown reports {unknown}. Available: {sorted(REPORTS)}")

    for key in ('n', 'inactive_days', 'max_orders', 'min_spend', 'low_activity_threshold'):
        if key in params:
            _require_non_negative(**{key: params[key]})
    if 'as_of' in params:
        params['as_of'] = _resolve_as_of(params['as_of'])

    return {name: run_report(name, snapshot, **params) for name in names}
