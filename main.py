"""
main.py

Command-line entry point for the calculator. Its responsibilities are:

1.  Parsing command-line options and setting up logging.
2.  Evaluating an expression given on the command line and printing the report.
3.  Otherwise running an interactive console that evaluates one expression per
    line until 'exit', 'quit' or end of input.

The evaluation itself lives in `calculator.evaluator`; this script only feeds it
strings and renders what comes back.
"""
import argparse
import asyncio
import logging
import random
import sys
from typing import Optional

import config
from calculator.evaluator import evaluate_expression
from calculator.report import render
from utils.logging_config import setup_logging

EXIT_COMMANDS = ('exit', 'quit')

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Evaluate math expressions and dice rolls, e.g. '3d6+2'.")
    parser.add_argument('expression', nargs='*', help="The expression to evaluate. Omit to start the interactive console.")
    parser.add_argument('-v', '--verbose', action='store_true', help="Show every evaluation step.")
    parser.add_argument('--seed', type=int, default=None, help="Seed the dice for reproducible rolls.")
    parser.add_argument('--log-level', default=config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], type=str.upper)
    parser.add_argument('--no-log-file', action='store_true', help=f"Do not write to {config.LOG_PATH}.")
    return parser

async def console_input_handler(rng: Optional[random.Random], verbose: bool) -> None:
    """
    Reads expressions from stdin until 'exit'/'quit' or EOF. Lines are read in an
    executor and evaluated with `asyncio.to_thread` so the loop is never blocked.
    """
    loop = asyncio.get_running_loop()
    print("Enter an expression, or 'exit' to quit.")
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:  # Reached EOF
            break
        query = line.strip()
        if query.lower() in EXIT_COMMANDS:
            logging.info(f"'{query}' command received from console. Exiting.")
            break
        if not query:
            continue
        context = await asyncio.to_thread(evaluate_expression, query, rng)
        print(render(context, verbose=verbose))

def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, log_to_file=not args.no_log_file)

    rng = random.Random(args.seed) if args.seed is not None else None

    if args.expression:
        context = evaluate_expression(' '.join(args.expression), rng)
        print(render(context, verbose=args.verbose))
        return 1 if context.error_flag else 0

    try:
        asyncio.run(console_input_handler(rng, args.verbose))
    except KeyboardInterrupt:
        logging.info("Console interrupted.")
    return 0

if __name__ == '__main__':
    sys.exit(main())
