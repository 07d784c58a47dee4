"""
Shared fixtures: a small food delivery snapshot with known answers.

Reference date is 2024-06-30. Customer 5 never ordered, customer 4's only
order is exactly 90 days old, customer 6's last order is 91 days old and
order 99 points to a customer that doesn't exist.
"""
import pandas as pd
import pytest
from ingestion.snapshot import DataSnapshot

AS_OF = pd.Timestamp('2024-06-30')


def build_frames():
    customers = pd.DataFrame([
        (1, 'Alice', '900001', 'Delhi'),
        (2, 'Bob', '900002', 'Mumbai'),
        (3, 'Chen', '900003', 'Delhi'),
        (4, 'Dana', '900004', 'Pune'),
        (5, 'Eve', '900005', 'Mumbai'),
        (6, 'Farid', '900006', 'Delhi'),
    ], columns=['customer_id', 'customer_name', 'contact', 'location'])

    restaurants = pd.DataFrame([
        (10, 'Spice Hub', 'Indian', 4.5, 'Delhi'),
        (11, 'Dragon Wok', 'Chinese', 4.0, 'Mumbai'),
        (12, 'Pizza Bay', 'Italian', 3.5, 'Delhi'),
        (13, 'Curry House', 'Indian', 4.1, 'Mumbai'),
    ], columns=['restaurant_id', 'restaurant_name', 'cuisine', 'rating', 'location'])

    riders = pd.DataFrame([
        (100, 'Ravi', 'Bike', '800100'),
        (101, 'Sam', 'Scooter', '800101'),
        (102, 'Tara', 'Bike', '800102'),
    ], columns=['rider_id', 'rider_name', 'vehicle_type', 'contact'])

    delivery = pd.DataFrame({
        'deliverer_id': [500, 501, 502],
        'rider_id': pd.array([100, 101, None], dtype='Int64'),
    })

    orders = pd.DataFrame([
        (1, 1, 10, 500, '2024-06-25', 1500.0, 'UPI', 'Delivered'),
        (2, 1, 10, 500, '2024-06-10', 1000.0, 'Card', 'Delivered'),
        (3, 1, 10, 501, '2024-05-15', 800.0, 'Cash', 'Delivered'),
        (4, 1, 12, 501, '2024-06-20', 200.0, 'UPI', 'Cancelled'),
        (5, 2, 11, 500, '2024-06-28', 200.0, 'UPI', 'Delivered'),
        (6, 2, 11, 501, '2024-06-01', 300.0, 'Card', 'Delivered'),
        (7, 2, 13, 500, '2024-05-25', 250.0, 'UPI', 'Delivered'),
        (8, 2, 11, 500, '2024-04-10', 250.0, 'Cash', 'Delivered'),
        (9, 2, 13, 501, '2024-03-05', 500.0, 'UPI', 'Delivered'),
        (10, 3, 12, 501, '2024-03-01', 2000.0, 'Card', 'Delivered'),
        (11, 3, 12, 500, '2024-02-15', 100.0, 'Cash', 'Cancelled'),
        (12, 4, 10, 500, '2024-04-01', 4000.0, 'Card', 'Delivered'),
        (13, 6, 13, 501, '2024-03-31', 3000.0, 'UPI', 'Delivered'),
        (14, 6, 13, 502, '2024-03-20', 50.0, 'Cash', 'Cancelled'),
        (99, 42, 10, 500, '2024-06-29', 999.0, 'UPI', 'Delivered'),
    ], columns=[
        'order_id', 'customer_id', 'restaurant_id', 'deliverer_id',
        'order_date', 'order_amount', 'payment_method', 'order_status'
    ])

    return {
        'customers': customers,
        'restaurants': restaurants,
        'riders': riders,
        'delivery': delivery,
        'orders': orders,
    }


def make_orders(rows):
    """Orders frame from (order_id, customer_id, order_date, amount, status) tuples."""
    orders = pd.DataFrame(rows, columns=['order_id', 'customer_id', 'order_date', 'order_amount', 'order_status'])
    orders['restaurant_id'] = 10
    orders['deliverer_id'] = 500
    orders['payment_method'] = 'UPI'
    orders['order_date'] = pd.to_datetime(orders['order_date'])
    return orders


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def frames():
    return build_frames()


@pytest.fixture
def snapshot(frames):
    return DataSnapshot.from_frames(frames)


@pytest.fixture
def valid_orders(snapshot):
    return snapshot.orders[snapshot.orders['customer_id'] != 42].copy()
