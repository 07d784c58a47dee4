"""
Rule-based customer segmentation: RFM scoring and revenue tiers.

Scores and labels are computed with numpy.select, which returns the choice of
the first condition that holds. Rules are therefore listed in priority order
and evaluated first-match-wins, exactly like a SQL CASE expression.
"""
import logging
import operator
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# (threshold, score) pairs, checked top to bottom; anything else scores 1
RECENCY_BREAKPOINTS = [(15, 5), (30, 4), (45, 3), (60, 2)]      # recency_days <= threshold
FREQUENCY_BREAKPOINTS = [(15, 5), (10, 4), (5, 3), (3, 2)]      # total_orders >= threshold
MONETARY_BREAKPOINTS = [(3000, 5), (2000, 4), (1000, 3), (500, 2)]  # total_revenue >= threshold
DEFAULT_SCORE = 1

CHAMPION = 'Champion'
LOYAL = 'Loyal'
AT_RISK = 'At Risk'
OTHERS = 'Others'
SEGMENTS = [CHAMPION, LOYAL, AT_RISK, OTHERS]

GOLD = 'Gold'
SILVER = 'Silver'
BRONZE = 'Bronze'
TIERS = [GOLD, SILVER, BRONZE]
GOLD_THRESHOLD = 4000
SILVER_THRESHOLD = 2000

def _as_float_series(values):
    if isinstance(values, pd.Series):
        return values.astype('float64')
    return pd.Series([values], dtype='float64')

def _apply_breakpoints(values, breakpoints, compare):
    scalar = not isinstance(values, pd.Series)
    series = _as_float_series(values)

    conditions = [compare(series, threshold) for threshold, _ in breakpoints]
    scores = np.select(conditions, [score for _, score in breakpoints], default=DEFAULT_SCORE)

    if scalar:
        return int(scores[0])
    return pd.Series(scores, index=series.index, dtype='int64')

def recency_score(recency_days):
    """Score days since the last order: fewer days score higher."""
    return _apply_breakpoints(recency_days, RECENCY_BREAKPOINTS, operator.le)

def frequency_score(total_orders):
    """Score the number of delivered orders."""
    return _apply_breakpoints(total_orders, FREQUENCY_BREAKPOINTS, operator.ge)

def monetary_score(total_revenue):
    """Score delivered revenue."""
    return _apply_breakpoints(total_revenue, MONETARY_BREAKPOINTS, operator.ge)

def _segment_conditions(r, f, m):
    return [
        (r == 5) & (f >= 4) & (m >= 4),
        (r >= 4) & (f >= 3),
        (r <= 2) & (f <= 2),
    ]

def assign_segment(r_score, f_score, m_score):
    """
    Segment label for one customer's scores; first matching rule wins.
    """
    for condition, label in zip(_segment_conditions(r_score, f_score, m_score), SEGMENTS):
        if condition:
            return label
    return OTHERS

def assign_segments(r_scores, f_scores, m_scores):
    """Vectorised assign_segment over aligned score Series."""
    labels = np.select(
        _segment_conditions(r_scores, f_scores, m_scores),
        SEGMENTS[:-1],
        default=OTHERS
    )
    return pd.Series(labels, index=r_scores.index, dtype='object')

def revenue_tier(total_revenue):
    """
    Gold above 4000, Silver above 2000, Bronze otherwise. Both cut-offs are
    exclusive: exactly 4000 is Silver and exactly 2000 is Bronze.
    """
    if isinstance(total_revenue, pd.Series):
        tiers = np.select(
            [total_revenue > GOLD_THRESHOLD, total_revenue > SILVER_THRESHOLD],
            [GOLD, SILVER],
            default=BRONZE
        )
        return pd.Series(tiers, index=total_revenue.index, dtype='object')

    if total_revenue > GOLD_THRESHOLD:
        return GOLD
    if total_revenue > SILVER_THRESHOLD:
        return SILVER
    return BRONZE

def score_rfm(aggregates):
    """
    Add r_score, f_score, m_score, rfm_total and segment to customer
    aggregates. Only customers with at least one order are scored.

    Args:
        aggregates (DataFrame): Output of customer_aggregates

    Returns:
        DataFrame: Scored customers ordered by rfm_total desc, customer_id asc
    """
    scored = aggregates[aggregates['total_orders'] > 0].copy()

    scored['r_score'] = recency_score(scored['recency_days'])
    scored['f_score'] = frequency_score(scored['total_orders'])
    scored['m_score'] = monetary_score(scored['total_revenue'])
    scored['rfm_total'] = scored['r_score'] + scored['f_score'] + scored['m_score']
    scored['segment'] = assign_segments(scored['r_score'], scored['f_score'], scored['m_score'])

    scored = scored.sort_values(
        ['rfm_total', 'customer_id'], ascending=[False, True], kind='mergesort'
    ).reset_index(drop=True)

    logger.info(f"Scored {len(scored)} customers for RFM segmentation")
    return scored

def classify_tiers(aggregates):
    """
    Add the revenue tier to customers with at least one order.

    Returns:
        DataFrame: customer_id, total_revenue, tier ordered by revenue desc
    """
    classified = aggregates.loc[aggregates['total_orders'] > 0, ['customer_id', 'total_revenue']].copy()
    classified['tier'] = revenue_tier(classified['total_revenue'])

    classified = classified.sort_values(
        ['total_revenue', 'customer_id'], ascending=[False, True], kind='mergesort'
    ).reset_index(drop=True)

    logger.info(f"Classified {len(classified)} customers into revenue tiers")
    return classified

def _label_counts(labels, order, label_column):
    counts = labels.value_counts().reindex(order, fill_value=0)
    summary = counts.rename_axis(label_column).reset_index(name='customer_count')
    summary['customer_count'] = summary['customer_count'].astype('int64')
    return summary

def segment_summary(scored):
    """Number of customers per RFM segment, in priority order."""
    return _label_counts(scored['segment'], SEGMENTS, 'segment')

def tier_summary(classified):
    """Number of customers and revenue per tier, Gold first."""
    summary = _label_counts(classified['tier'], TIERS, 'tier')
    revenue = classified.groupby('tier')['total_revenue'].sum().reindex(TIERS, fill_value=0.0)
    summary['total_revenue'] = revenue.values
    return summary
