from typing import List, Tuple
from src.forward_engine.models.trade_models import Trade
from src.forward_engine.models.sizing_models import KellyMetrics

class KellyCalculator:
    """
    Kelly Criterion metrics for a set of trades.
    K = W - (1-W)/R, with W = win rate and R = average win / average loss.
    """

    @staticmethod
    def compute(win_prob: float, win_loss_ratio: float) -> float:
        if win_loss_ratio <= 0:
            return 0.0
        return win_prob - ((1.0 - win_prob) / win_loss_ratio)

    @staticmethod
    def calculate(trades: List[Trade]) -> KellyMetrics:
        if not trades:
            return KellyMetrics(
                fraction=0.0, percent=0.0, win_rate=0.0, payoff_ratio=0.0,
                avg_win=0.0, avg_loss=0.0, has_valid_kelly=False
            )

        wins = [t.pl for t in trades if t.pl > 0]
        losses = [abs(t.pl) for t in trades if t.pl < 0]

        win_rate = len(wins) / len(trades)
        avg_win = sum(wins) / len(wins) if wins else 0.0
        avg_loss = sum(losses) / len(losses) if losses else 0.0

        normalized = None
        if any(t.margin_req > 0 for t in trades):
            normalized = KellyCalculator._from_margin_returns(trades)

        avg_win_pct = normalized[1] if normalized else None
        avg_loss_pct = normalized[2] if normalized else None
        normalized_pct = normalized[0] * 100 if normalized and normalized[3] else None

        if not wins or not losses or avg_loss <= 0:
            return KellyMetrics(
                fraction=0.0,
                percent=0.0,
                win_rate=win_rate,
                payoff_ratio=avg_win / avg_loss if avg_loss > 0 else 0.0,
                avg_win=avg_win,
                avg_loss=avg_loss,
                has_valid_kelly=False,
                avg_win_pct=avg_win_pct,
                avg_loss_pct=avg_loss_pct,
                normalized_kelly_pct=normalized_pct,
            )

        payoff = avg_win / avg_loss
        fraction = KellyCalculator.compute(win_rate, payoff)
        return KellyMetrics(
            fraction=fraction,
            percent=fraction * 100,
            win_rate=win_rate,
            payoff_ratio=payoff,
            avg_win=avg_win,
            avg_loss=avg_loss,
            has_valid_kelly=True,
            avg_win_pct=avg_win_pct,
            avg_loss_pct=avg_loss_pct,
            normalized_kelly_pct=normalized_pct,
        )

    @staticmethod
    def _from_margin_returns(trades: List[Trade]) -> Tuple[float, float, float, bool]:
        """
        Kelly on returns relative to margin requirement: (fraction, avg_win_pct, avg_loss_pct, valid).
        Trades without margin data are ignored.
        """
        win_returns = []
        loss_returns = []
        for t in trades:
            if t.margin_req <= 0:
                continue
            ret = t.pl / t.margin_req * 100
            if t.pl > 0:
                win_returns.append(ret)
            elif t.pl < 0:
                loss_returns.append(abs(ret))

        total = len(win_returns) + len(loss_returns)
        win_rate = len(win_returns) / total if total else 0.0
        avg_win_pct = sum(win_returns) / len(win_returns) if win_returns else 0.0
        avg_loss_pct = sum(loss_returns) / len(loss_returns) if loss_returns else 0.0

        if not win_returns or not loss_returns or avg_loss_pct <= 0:
            return 0.0, avg_win_pct, avg_loss_pct, False

        return KellyCalculator.compute(win_rate, avg_win_pct / avg_loss_pct), avg_win_pct, avg_loss_pct, True
