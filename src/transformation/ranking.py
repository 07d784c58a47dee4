"""
Dense ranking and top-N selection.
"""
import logging
import numbers
from errors import ConfigurationError

logger = logging.getLogger(__name__)

def _sort_ranked(ranked, rank_column, tiebreak, partition=None):
    sort_columns = ([partition] if partition else []) + [rank_column]
    if tiebreak:
        sort_columns += [tiebreak] if isinstance(tiebreak, str) else list(tiebreak)
    return ranked.sort_values(sort_columns, kind='mergesort').reset_index(drop=True)

def dense_rank(frame, metric, ascending=False, tiebreak=None, rank_column='rank'):
    """
    Add a dense rank over ``metric``.

    Equal values share a rank and the next distinct value gets the next
    integer, so [100, 100, 90, 80, 80] ranks as [1, 1, 2, 3, 3]. Rows are
    returned ordered by rank, then by ``tiebreak`` ascending. Rows with a
    null metric are dropped.
    """
    ranked = frame[frame[metric].notna()].copy()
    ranked[rank_column] = ranked[metric].rank(method='dense', ascending=ascending).astype('int64')
    return _sort_ranked(ranked, rank_column, tiebreak)

def dense_rank_within(frame, partition, metric, ascending=False, tiebreak=None, rank_column='rank'):
    """
    Dense rank ``metric`` separately inside each ``partition`` value.
    """
    ranked = frame[frame[metric].notna() & frame[partition].notna()].copy()
    ranked[rank_column] = (
        ranked.groupby(partition)[metric]
        .rank(method='dense', ascending=ascending)
        .astype('int64')
    )
    return _sort_ranked(ranked, rank_column, tiebreak, partition=partition)

def top_n(frame, metric, n, ascending=False, tiebreak=None, rank_column='rank'):
    """
    Rows whose dense rank is at most ``n``.

    Ties at rank ``n`` are all kept, so more than ``n`` rows can come back.
    """
    if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n < 0:
        raise ConfigurationError(f"top_n requires a non-negative integer, got {n!r}")

    ranked = dense_rank(frame, metric, ascending=ascending, tiebreak=tiebreak, rank_column=rank_column)
    selected = ranked[ranked[rank_column] <= n].reset_index(drop=True)

    if len(selected) > n:
        logger.debug(f"Top {n} by {metric} returned {len(selected)} rows because of ties")
    return selected
