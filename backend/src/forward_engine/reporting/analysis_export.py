import csv
import io
import json
from src.forward_engine.models.walkforward_models import WalkForwardAnalysis

# Columns for the standard tunables, in export order
PARAMETER_COLUMNS = [
    ("Kelly Multiplier", "kellyMultiplier"),
    ("Fixed Fraction %", "fixedFractionPct"),
    ("Max DD %", "maxDrawdownPct"),
    ("Max Daily Loss %", "maxDailyLossPct"),
    ("Consecutive Loss Limit", "consecutiveLossLimit"),
]

class AnalysisExporter:
    """
    Serializes a stored walk-forward analysis for download.
    """

    @staticmethod
    def to_json(analysis: WalkForwardAnalysis) -> str:
        payload = {
            "id": analysis.id,
            "block_id": analysis.block_id,
            "created_at": analysis.created_at,
            "config": analysis.config.model_dump(mode="json"),
            "results": analysis.results.model_dump(mode="json"),
        }
        return json.dumps(payload, indent=2, default=str)

    @staticmethod
    def to_csv(analysis: WalkForwardAnalysis) -> str:
        """
        One row per period, followed by a blank line and a summary block.
        """
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")

        writer.writerow(
            ["IS Start", "IS End", "OOS Start", "OOS End", "Target IS", "Target OOS"]
            + [label for label, _ in PARAMETER_COLUMNS]
        )
        for p in analysis.results.periods:
            writer.writerow(
                [
                    p.in_sample_start.date().isoformat(),
                    p.in_sample_end.date().isoformat(),
                    p.out_of_sample_start.date().isoformat(),
                    p.out_of_sample_end.date().isoformat(),
                    _cell(p.target_metric_in_sample),
                    _cell(p.target_metric_out_of_sample),
                ]
                + [_cell(p.optimal_parameters.get(name)) for _, name in PARAMETER_COLUMNS]
            )

        summary = analysis.results.summary
        stats = analysis.results.stats
        writer.writerow([])
        writer.writerow(["Summary"])
        writer.writerow(["Avg IS Performance", summary.avg_in_sample_performance])
        writer.writerow(["Avg OOS Performance", summary.avg_out_of_sample_performance])
        writer.writerow(["Efficiency Ratio (OOS/IS)", summary.degradation_factor])
        writer.writerow(["Parameter Stability", summary.parameter_stability])
        writer.writerow(["Robustness Score", summary.robustness_score])
        writer.writerow(["Consistency Score", stats.consistency_score])
        writer.writerow(["Avg Performance Delta", stats.average_performance_delta])
        return buf.getvalue()

def _cell(value):
    return "" if value is None else value
