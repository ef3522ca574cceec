"""
Database initialization for the portfolio engine
Creates tables, series indexes, and the per-region cash rows
"""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from portfolio_engine.database.connection import get_engine, build_session_factory
from portfolio_engine.models import Base, PortfolioCash
from portfolio_engine.regions import all_regions


SERIES_INDEXES = (
    ("historical_prices", "symbol, region, date DESC"),
    ("indicator_data", "symbol, region, date DESC"),
)


def create_series_indexes(db_session: Session):
    """
    Create descending date indexes used by latest-first lookups (PostgreSQL only)

    Args:
        db_session: SQLAlchemy database session
    """
    if db_session.get_bind().dialect.name != "postgresql":
        return

    for table_name, columns in SERIES_INDEXES:
        db_session.execute(
            text(f"""
                CREATE INDEX IF NOT EXISTS idx_{table_name}_series_desc
                ON {table_name} ({columns})
            """)
        )
    db_session.commit()


def ensure_cash_rows(db_session: Session) -> int:
    """
    Create a zero cash balance for every region that has none

    Returns:
        int: Number of rows created
    """
    existing = {row.region for row in db_session.query(PortfolioCash).all()}
    created = 0
    for region in all_regions():
        if region.value not in existing:
            db_session.add(PortfolioCash(region=region.value, amount=0.0))
            created += 1
    db_session.commit()
    return created


def init_db(engine: Optional[Engine] = None):
    """
    Initialize database with tables, indexes and cash rows
    """
    engine = engine or get_engine()
    print("🚀 Initializing portfolio engine database...")

    # Create all tables
    Base.metadata.create_all(bind=engine)
    print("✅ Created all tables")

    db = build_session_factory(engine)()

    try:
        create_series_indexes(db)
        created = ensure_cash_rows(db)
        print(f"✅ Created {created} cash balance rows")
        print("✅ Database initialization complete!")

    except Exception as e:
        print(f"❌ Error during database initialization: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    # Run initialization when script is executed directly
    init_db()
