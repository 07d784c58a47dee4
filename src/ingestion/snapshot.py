"""
Immutable snapshot of the five source collections.
"""
from dataclasses import dataclass
import pandas as pd

COLLECTION_COLUMNS = {
    'customers': ['customer_id', 'customer_name', 'contact', 'location'],
    'restaurants': ['restaurant_id', 'restaurant_name', 'cuisine', 'rating', 'location'],
    'riders': ['rider_id', 'rider_name', 'vehicle_type', 'contact'],
    'delivery': ['deliverer_id', 'rider_id'],
    'orders': [
        'order_id', 'customer_id', 'restaurant_id', 'deliverer_id',
        'order_date', 'order_amount', 'payment_method', 'order_status'
    ],
}

def _prepare_frame(name, df):
    if df is None:
        df = pd.DataFrame(columns=COLLECTION_COLUMNS[name])
    df = df.copy()

    # Guarantee canonical columns exist, even on empty input
    for col in COLLECTION_COLUMNS[name]:
        if col not in df.columns:
            df[col] = pd.Series(dtype='object')

    if name == 'orders':
        df['order_date'] = pd.to_datetime(df['order_date'], errors='coerce')
        df['order_amount'] = pd.to_numeric(df['order_amount'], errors='coerce').astype('float64')
    elif name == 'restaurants':
        df['rating'] = pd.to_numeric(df['rating'], errors='coerce').astype('float64')

    return df.reset_index(drop=True)

@dataclass(frozen=True)
class DataSnapshot:
    """
    Read-only view of customers, restaurants, riders, delivery and orders.

    Reports receive a snapshot and must not modify its frames; every
    transformation works on copies.
    """
    customers: pd.DataFrame
    restaurants: pd.DataFrame
    riders: pd.DataFrame
    delivery: pd.DataFrame
    orders: pd.DataFrame

    @classmethod
    def from_frames(cls, frames):
        """
        Build a snapshot from a mapping of collection name to DataFrame.
        Missing collections become empty frames with the canonical columns.
        """
        return cls(**{
            name: _prepare_frame(name, frames.get(name))
            for name in COLLECTION_COLUMNS
        })

    def as_dict(self):
        return {name: getattr(self, name) for name in COLLECTION_COLUMNS}

    def row_counts(self):
        return {name: len(df) for name, df in self.as_dict().items()}
