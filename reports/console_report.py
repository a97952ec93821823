"""
Console sinks for the ETF ranking.
Human-readable table and line-delimited JSON.
"""

import sys
import json
import pandas as pd
from typing import List, Optional, TextIO

from analysis.etf_analyzer import AnalysisResult
from reports.formatters import format_percentage, format_price, format_ratio


COLUMN_LABELS = {
    'symbol': 'Symbol',
    'start_price': 'Start Price',
    'end_price': 'End Price',
    'cagr': 'CAGR',
    'volatility': 'Volatility',
    'ratio': 'Return/Vol',
    'years': 'Years',
    'data_points': 'Data Points',
}


def build_results_table(results: List[AnalysisResult]) -> pd.DataFrame:
    """
    Build a display DataFrame, one row per result in ranking order.

    Index starts at 1 so it reads as the rank.
    """
    columns = list(COLUMN_LABELS.values())
    if not results:
        return pd.DataFrame(columns=columns)

    rows = []
    for result in results:
        rows.append({
            'Symbol': result.symbol,
            'Start Price': format_price(result.start_price),
            'End Price': format_price(result.end_price),
            'CAGR': format_percentage(result.cagr),
            'Volatility': format_percentage(result.volatility),
            'Return/Vol': format_ratio(result.ratio),
            'Years': f"{result.years:.2f}",
            'Data Points': result.data_points,
        })

    df = pd.DataFrame(rows, columns=columns)
    df.index = range(1, len(df) + 1)
    df.index.name = 'Rank'
    return df


def print_results_table(
    results: List[AnalysisResult],
    stream: Optional[TextIO] = None
) -> None:
    """Print the ranking as a table, best ratio first."""
    out = stream or sys.stdout

    print("\nResults (sorted by return/volatility ratio):\n", file=out)

    if not results:
        print("No ETFs could be analyzed.", file=out)
        return

    print(build_results_table(results).to_string(), file=out)


def write_results_jsonl(
    results: List[AnalysisResult],
    stream: Optional[TextIO] = None
) -> None:
    """Write one JSON object per result, in ranking order."""
    out = stream or sys.stdout

    for rank, result in enumerate(results, 1):
        record = {'rank': rank}
        record.update(result.to_dict())
        out.write(json.dumps(record) + '\n')
