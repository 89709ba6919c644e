"""Database configuration and initialization."""
from sqlalchemy import BigInteger, Integer, create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY columns
BigIntegerPK = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def configure_sqlite(sqlite_engine, begin_statement='BEGIN'):
    """Enable foreign keys and real SAVEPOINT support on pysqlite."""

    @event.listens_for(sqlite_engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself so nested transactions work
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(sqlite_engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql(begin_statement)


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    echo = app.config.get('SQLALCHEMY_ECHO', False)

    if database_uri.startswith('sqlite'):
        engine = create_engine(
            database_uri,
            echo=echo,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool
        )
        configure_sqlite(engine)
    else:
        engine = create_engine(
            database_uri,
            echo=echo,
            pool_pre_ping=True,  # Enable connection health checks
            pool_size=10,
            max_overflow=20
        )

    db_session = scoped_session(
        sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=engine,
            expire_on_commit=app.config.get('SQLALCHEMY_EXPIRE_ON_COMMIT', True)
        )
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table known to the models (dev and test databases)."""
    import app.models  # noqa: F401  (registers mappers on Base)
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table known to the models."""
    import app.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session
