"""
Database models for the food delivery source tables.
"""
from sqlalchemy import Column, Integer, String, Float, Date, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class Customer(Base):
    """Registered customers."""
    __tablename__ = 'customers'

    customer_id = Column(Integer, primary_key=True)
    customer_name = Column(String(100))
    contact = Column(String(50))
    location = Column(String(100))

class Restaurant(Base):
    """Partner restaurants."""
    __tablename__ = 'restaurants'

    restaurant_id = Column(Integer, primary_key=True)
    restaurant_name = Column(String(100))
    cuisine = Column(String(50))
    rating = Column(Float)
    location = Column(String(100))

class Rider(Base):
    """Delivery riders."""
    __tablename__ = 'riders'

    rider_id = Column(Integer, primary_key=True)
    rider_name = Column(String(100))
    vehicle_type = Column(String(50))
    contact = Column(String(50))

class Delivery(Base):
    """Assignment of a deliverer to a rider; rider_id is null when unassigned."""
    __tablename__ = 'delivery'

    deliverer_id = Column(Integer, primary_key=True)
    rider_id = Column(Integer, ForeignKey('riders.rider_id'), nullable=True)

class Order(Base):
    """Customer orders."""
    __tablename__ = 'orders'

    order_id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey('customers.customer_id'))
    restaurant_id = Column(Integer, ForeignKey('restaurants.restaurant_id'))
    deliverer_id = Column(Integer, ForeignKey('delivery.deliverer_id'))
    order_date = Column(Date)
    order_amount = Column(Float)
    payment_method = Column(String(30))
    order_status = Column(String(20))

SOURCE_TABLES = {
    'customers': Customer,
    'restaurants': Restaurant,
    'riders': Rider,
    'delivery': Delivery,
    'orders': Order,
}
