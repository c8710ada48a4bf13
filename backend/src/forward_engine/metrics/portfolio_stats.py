import math
from collections import defaultdict
from datetime import date
from typing import List, Dict, Optional, Tuple
import numpy as np
from src.forward_engine.models.trade_models import Trade, PortfolioStats
from src.forward_engine.metrics.kelly import KellyCalculator

class PortfolioStatsCalculator:
    """
    Computes portfolio metrics from a list of trades.
    Drawdown is measured on funds_at_close ordered by close date; return-based ratios
    use daily P/L grouped by open date against a running capital base.
    """

    def __init__(self, risk_free_rate: float = 2.0, annualization_factor: int = 252):
        # risk_free_rate is an annual percentage
        self.risk_free_rate = risk_free_rate
        self.annualization_factor = annualization_factor

    def calculate(self, trades: List[Trade]) -> PortfolioStats:
        valid = [t for t in trades if self._is_valid(t)]
        if not valid:
            return self.empty_stats()

        pls = [t.pl for t in valid]
        total_pl = float(sum(pls))
        total_commissions = float(sum(t.opening_commissions_fees + t.closing_commissions_fees for t in valid))

        wins = [p for p in pls if p > 0]
        losses = [p for p in pls if p < 0]
        break_even = [p for p in pls if p == 0]

        gross_profit = sum(wins)
        gross_loss = abs(sum(losses))
        if gross_loss > 0:
            profit_factor = gross_profit / gross_loss
        elif gross_profit > 0:
            # Undefined without losses
            profit_factor = None
        else:
            profit_factor = 0.0

        max_drawdown = self._max_drawdown(valid)
        cagr = self._cagr(valid)
        streaks = self._streaks(valid)
        monthly, weekly = self._periodic_win_rates(valid)
        kelly = KellyCalculator.calculate(valid)

        return PortfolioStats(
            total_trades=len(valid),
            total_pl=total_pl,
            winning_trades=len(wins),
            losing_trades=len(losses),
            break_even_trades=len(break_even),
            win_rate=len(wins) / len(valid),
            avg_win=float(np.mean(wins)) if wins else 0.0,
            avg_loss=float(np.mean(losses)) if losses else 0.0,
            max_win=float(max(wins)) if wins else 0.0,
            max_loss=float(min(losses)) if losses else 0.0,
            sharpe_ratio=self._sharpe(valid),
            sortino_ratio=self._sortino(valid),
            calmar_ratio=cagr / max_drawdown if cagr and max_drawdown != 0 else None,
            cagr=cagr,
            kelly_percentage=kelly.percent if kelly.has_valid_kelly else None,
            max_drawdown=max_drawdown,
            avg_daily_pl=self._avg_daily_pl(valid),
            total_commissions=total_commissions,
            net_pl=total_pl - total_commissions,
            profit_factor=profit_factor,
            initial_capital=self.calculate_initial_capital(valid),
            max_win_streak=streaks[0],
            max_loss_streak=streaks[1],
            current_streak=streaks[2],
            time_in_drawdown=self._time_in_drawdown(valid),
            monthly_win_rate=monthly,
            weekly_win_rate=weekly,
            max_daily_loss_pct=self._max_daily_loss_pct(valid),
        )

    @staticmethod
    def empty_stats() -> PortfolioStats:
        return PortfolioStats(
            total_trades=0, total_pl=0.0, winning_trades=0, losing_trades=0, break_even_trades=0,
            win_rate=0.0, avg_win=0.0, avg_loss=0.0, max_win=0.0, max_loss=0.0,
            max_drawdown=0.0, avg_daily_pl=0.0, total_commissions=0.0, net_pl=0.0,
            profit_factor=0.0, initial_capital=0.0,
        )

    @staticmethod
    def calculate_initial_capital(trades: List[Trade]) -> float:
        """
        Capital before the first trade: first trade's funds_at_close minus its P/L.
        """
        if not trades:
            return 0.0
        first = min(trades, key=lambda t: (t.date_opened, t.time_opened))
        return first.funds_at_close - first.pl

    @staticmethod
    def _is_valid(trade: Trade) -> bool:
        return all(
            math.isfinite(v)
            for v in (trade.pl, trade.opening_commissions_fees, trade.closing_commissions_fees)
        )

    @staticmethod
    def _by_open(trades: List[Trade]) -> List[Trade]:
        return sorted(trades, key=lambda t: (t.date_opened, t.time_opened))

    @staticmethod
    def _closed_by_close(trades: List[Trade]) -> List[Trade]:
        closed = [t for t in trades if t.date_closed is not None]
        return sorted(closed, key=lambda t: (t.date_closed, t.time_closed or ""))

    def _max_drawdown(self, trades: List[Trade]) -> float:
        closed = self._closed_by_close(trades)
        if not closed:
            return 0.0

        peak = closed[0].funds_at_close - closed[0].pl
        max_dd = 0.0
        for t in closed:
            value = t.funds_at_close
            if value > peak:
                peak = value
            if peak > 0:
                dd = (peak - value) / peak * 100
                if dd > max_dd:
                    max_dd = dd
        return max_dd

    def _time_in_drawdown(self, trades: List[Trade]) -> Optional[float]:
        closed = self._closed_by_close(trades)
        if not closed:
            return None

        peak = closed[0].funds_at_close - closed[0].pl
        in_dd = 0
        for t in closed:
            if t.funds_at_close > peak:
                peak = t.funds_at_close
            if t.funds_at_close < peak:
                in_dd += 1
        return in_dd / len(closed) * 100

    def _daily_pl(self, trades: List[Trade]) -> Dict[date, float]:
        daily: Dict[date, float] = defaultdict(float)
        for t in self._by_open(trades):
            daily[t.date_opened.date()] += t.pl
        return dict(sorted(daily.items()))

    def _avg_daily_pl(self, trades: List[Trade]) -> float:
        daily = self._daily_pl(trades)
        if not daily:
            return 0.0
        return float(np.mean(list(daily.values())))

    def _daily_returns(self, trades: List[Trade]) -> List[float]:
        capital = self.calculate_initial_capital(trades)
        returns = []
        for pl in self._daily_pl(trades).values():
            if capital > 0:
                returns.append(pl / capital)
                capital += pl
        return returns

    def _daily_risk_free(self) -> float:
        return self.risk_free_rate / 100 / self.annualization_factor

    def _sharpe(self, trades: List[Trade]) -> Optional[float]:
        returns = self._daily_returns(trades)
        if len(returns) < 2:
            return None

        std = float(np.std(returns, ddof=1))
        if std == 0:
            return None

        excess = float(np.mean(returns)) - self._daily_risk_free()
        return excess / std * math.sqrt(self.annualization_factor)

    def _sortino(self, trades: List[Trade]) -> Optional[float]:
        if len(trades) < 2:
            return None
        returns = self._daily_returns(trades)
        if len(returns) < 2:
            return None

        excess = np.array(returns) - self._daily_risk_free()
        downside = excess[excess < 0]
        if downside.size == 0:
            return None

        downside_dev = float(np.std(downside))
        if downside_dev < 1e-10:
            return None

        return float(np.mean(excess)) / downside_dev * math.sqrt(self.annualization_factor)

    def _cagr(self, trades: List[Trade]) -> Optional[float]:
        ordered = self._by_open(trades)
        start = ordered[0].date_opened
        end = ordered[-1].date_closed or ordered[-1].date_opened
        years = (end - start).total_seconds() / (365.25 * 86400)
        if years <= 0:
            return None

        initial = self.calculate_initial_capital(trades)
        final = initial + sum(t.pl for t in trades)
        if initial <= 0 or final <= 0:
            return None

        return ((final / initial) ** (1 / years) - 1) * 100

    def _streaks(self, trades: List[Trade]) -> Tuple[int, int, int]:
        max_win = max_loss = cur_win = cur_loss = 0
        for t in self._by_open(trades):
            if t.pl > 0:
                cur_win += 1
                cur_loss = 0
                max_win = max(max_win, cur_win)
            elif t.pl < 0:
                cur_loss += 1
                cur_win = 0
                max_loss = max(max_loss, cur_loss)
            else:
                # Break-even ends both streaks
                cur_win = cur_loss = 0

        current = cur_win if cur_win > 0 else -cur_loss
        return max_win, max_loss, current

    @staticmethod
    def _periodic_win_rates(trades: List[Trade]) -> Tuple[float, float]:
        monthly: Dict[Tuple[int, int], float] = defaultdict(float)
        weekly: Dict[Tuple[int, int], float] = defaultdict(float)
        for t in trades:
            d = t.date_opened
            monthly[(d.year, d.month)] += t.pl
            iso = d.isocalendar()
            weekly[(iso[0], iso[1])] += t.pl

        def rate(buckets: Dict[Tuple[int, int], float]) -> float:
            if not buckets:
                return 0.0
            return sum(1 for v in buckets.values() if v > 0) / len(buckets) * 100

        return rate(monthly), rate(weekly)

    def _max_daily_loss_pct(self, trades: List[Trade]) -> float:
        capital = self.calculate_initial_capital(trades)
        if capital == 0:
            return 0.0

        by_day: Dict[date, float] = defaultdict(float)
        for t in trades:
            by_day[(t.date_closed or t.date_opened).date()] += t.pl

        worst = 0.0
        for pl in by_day.values():
            if pl < 0:
                worst = max(worst, abs(pl) / capital * 100)
        return worst
