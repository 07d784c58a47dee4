"""
Database connection handling for the analytics pipeline.
"""
import logging
from sqlalchemy import create_engine
from config import Config

logger = logging.getLogger(__name__)

def build_connection_string(db_config):
    """
    Build a SQLAlchemy URL from the DATABASE section values.
    """
    if db_config['type'] == 'sqlite':
        name = db_config['name'] or ':memory:'
        return f"sqlite:///{name}"
    elif db_config['type'] in ('postgres', 'postgresql'):
        return f"postgresql+psycopg2://{db_config['user']}:{db_config['password']}@{db_config['host']}:{db_config['port']}/{db_config['name']}"
    elif db_config['type'] == 'mysql':
        return f"mysql+pymysql://{db_config['user']}:{db_config['password']}@{db_config['host']}:{db_config['port']}/{db_config['name']}"
    raise ValueError(f"Unsupported database type: {db_config['type']}")

def create_db_engine(config=None):
    """
    Create a SQLAlchemy engine from configuration.
    """
    try:
        if config is None:
            config = Config()

        db_config = config.get_database_config()
        engine = create_engine(build_connection_string(db_config))
        logger.info(f"Database connection created for {db_config['type']}")
        return engine
    except Exception as e:
        logger.error(f"Failed to create database connection: {str(e)}")
        raise

def init_db(engine, base):
    """
    Initialize database tables.
    """
    base.metadata.create_all(engine)
    logger.info("Database tables initialized")
