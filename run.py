#!/usr/bin/env python3
"""
Banking System Entry Point

Starts the interactive console over a BankingSystem.

Usage (from the project root):
    python run.py
    python run.py --seed
    python run.py --load --data-dir data --log-level DEBUG --log-file bank.log
"""

import sys
import argparse
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from bankapp.bank import BankingSystem
from bankapp.config import get_config
from bankapp.console import ConsoleApp
from bankapp.logging_config import setup_logging


def parse_args() -> argparse.Namespace:
    cfg = get_config()
    parser = argparse.ArgumentParser(
        description="Banking System - accounts, transfers and concurrent transaction simulation."
    )
    parser.add_argument(
        "--data-dir", type=str, default=None,
        help=f"Directory holding the data files. Defaults to config value ({cfg.data_dir})."
    )
    parser.add_argument(
        "--log-level", type=str, default=cfg.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level. Default: config value."
    )
    parser.add_argument(
        "--log-format", type=str, default=cfg.log_format, choices=["json", "text"],
        help="Log record format. Default: config value."
    )
    parser.add_argument(
        "--log-file", type=str, default=cfg.log_file,
        help="Write logs to this file instead of stderr."
    )
    parser.add_argument(
        "--load", action="store_true", default=False,
        help="Load stored accounts and transactions before starting."
    )
    parser.add_argument(
        "--seed", action="store_true", default=False,
        help="Create the demo accounts when no accounts are present."
    )
    return parser.parse_args()


def main():
    args = parse_args()
    logger = setup_logging(
        level=args.log_level, fmt=args.log_format, log_file=args.log_file
    )

    bank = BankingSystem(data_dir=args.data_dir)

    if args.load:
        try:
            accounts, transactions = bank.load()
        except OSError as e:
            logger.error(f"Could not load data: {e}")
            print(f"Error loading data: {e}")
            sys.exit(1)
        print(f"Loaded {accounts} accounts and {transactions} transactions.")

    if args.seed and bank.account_manager.get_account_count() == 0:
        bank.seed_demo_data()
        print("Demo accounts created.")

    ConsoleApp(bank).run()


if __name__ == "__main__":
    main()
