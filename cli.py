#!/usr/bin/env python3
"""
Main CLI for the ETF risk/return ranker.
Usage: python cli.py
"""

import os
import sys
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from pipeline.etf_ranking_dag import (
    EtfRankingConfig,
    ConfigurationError,
    run_etf_ranking
)
from reports.console_report import print_results_table, write_results_jsonl

logger = logging.getLogger('etf_ranker')

SINKS = {
    'table': print_results_table,
    'jsonl': write_results_jsonl,
}


def main() -> int:
    """Main CLI entry point. Returns the process exit code."""
    log_level = os.getenv('LOG_LEVEL', 'INFO').strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        print(f"ERROR: Invalid LOG_LEVEL: {log_level}", file=sys.stderr)
        print("Available levels: DEBUG, INFO, WARNING, ERROR, CRITICAL", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    output_format = os.getenv('ETF_OUTPUT_FORMAT', 'table').lower()
    sink = SINKS.get(output_format)
    if sink is None:
        print(f"ERROR: Unknown ETF_OUTPUT_FORMAT: {output_format}", file=sys.stderr)
        print(f"Available formats: {', '.join(SINKS)}", file=sys.stderr)
        return 2

    try:
        config = EtfRankingConfig.from_env()
    except (ConfigurationError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    human = output_format == 'table'
    if human:
        print("ETF Analyzer\n")
        print(f"Analyzing ETFs: {', '.join(config.symbols)}")

    try:
        result = run_etf_ranking(config, sink=sink)
    except Exception:
        logger.exception("ETF ranking failed")
        return 1

    for symbol, reason in result['skipped'].items():
        logger.info(f"Skipped {symbol}: {reason}")

    if human:
        print("\nAnalysis complete!")

    return 0


if __name__ == '__main__':
    sys.exit(main())
