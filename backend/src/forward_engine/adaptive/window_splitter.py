from datetime import datetime, timedelta
from typing import List, Tuple
from src.forward_engine.models.trade_models import Trade
from src.forward_engine.models.walkforward_models import WalkForwardWindow, WalkForwardConfig

class WindowSplitter:
    """
    Generates rolling walk-forward windows.
    Prevents lookahead bias by ensuring clear separation between in-sample and out-of-sample data.
    """

    @staticmethod
    def split(
        start_time: datetime,
        end_time: datetime,
        train_days: int = 14,
        test_days: int = 7,
        step_days: int = 7
    ) -> List[WalkForwardWindow]:
        windows = []
        current_train_start = start_time

        while True:
            current_train_end = current_train_start + timedelta(days=train_days)
            current_test_start = current_train_end
            current_test_end = current_test_start + timedelta(days=test_days)

            if current_test_end > end_time:
                break

            windows.append(WalkForwardWindow(
                in_sample_start=current_train_start,
                in_sample_end=current_train_end,
                out_of_sample_start=current_test_start,
                out_of_sample_end=current_test_end
            ))

            current_train_start += timedelta(days=step_days)

        return windows

    @staticmethod
    def segment(trades: List[Trade], config: WalkForwardConfig) -> List[WalkForwardWindow]:
        """
        Windows for trades sorted ascending by open date. The first window starts at midnight
        of the earliest open date; the last must end no later than the latest open date.
        """
        if not trades:
            return []

        first = trades[0].date_opened
        start = first.replace(hour=0, minute=0, second=0, microsecond=0)
        return WindowSplitter.split(
            start,
            trades[-1].date_opened,
            train_days=config.in_sample_days,
            test_days=config.out_of_sample_days,
            step_days=config.step_size_days
        )

    @staticmethod
    def partition(trades: List[Trade], window: WalkForwardWindow) -> Tuple[List[Trade], List[Trade]]:
        in_sample = [t for t in trades if window.in_sample_start <= t.date_opened < window.in_sample_end]
        out_of_sample = [t for t in trades if window.out_of_sample_start <= t.date_opened < window.out_of_sample_end]
        return in_sample, out_of_sample
