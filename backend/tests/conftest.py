from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from models import Base
from src.forward_engine.models.trade_models import Trade


def build_trades(pls, start="2024-01-02", interval_days=3, starting_funds=50_000.0, margin_req=1_000.0):
    """Trade log with one trade every interval_days, each closing the next day."""
    trades = []
    funds = starting_funds
    opened = datetime.fromisoformat(start)
    for i, pl in enumerate(pls):
        funds += pl
        open_dt = opened + timedelta(days=i * interval_days)
        trades.append(Trade(
            date_opened=open_dt,
            time_opened="09:30:00",
            date_closed=open_dt + timedelta(days=1),
            time_closed="15:45:00",
            pl=pl,
            num_contracts=1,
            funds_at_close=funds,
            margin_req=margin_req,
            strategy="Momentum" if i % 2 == 0 else "Mean Reversion",
            opening_commissions_fees=1.0,
            closing_commissions_fees=1.0,
        ))
    return trades


@pytest.fixture
def make_trades():
    return build_trades


@pytest.fixture
def db_session(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'walk_forward.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
