"""
config.py

This module centralizes all configuration settings for the calculator.
It handles path definitions, loading optional overrides from `calc.env`,
and defining the limits that keep a single evaluation bounded.
"""
import os
import sys
import logging
from dotenv import load_dotenv

# --- Pathing ---

def get_application_path() -> str:
    """
    Determines the base path for the application, whether it is running from
    source or as a bundled executable.
    """
    if getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS'):
        return os.path.dirname(sys.executable)
    return os.path.dirname(os.path.abspath(__file__))

APP_PATH = get_application_path()
ENV_PATH = os.path.join(APP_PATH, 'calc.env')
LOG_PATH = os.path.join(APP_PATH, 'calculator.log')

# A missing env file is fine; every setting has a default.
load_dotenv(dotenv_path=ENV_PATH)

def read_positive_int(name: str, default: int) -> int:
    """
    Reads a positive integer from the environment. Anything unusable is logged
    and replaced by `default` so a typo in `calc.env` never stops the calculator.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    raw = raw.strip().replace('_', '')
    if not raw.isdigit() or int(raw) < 1:
        logging.warning(f"Ignoring invalid value '{raw}' for {name}; using {default}.")
        return default
    return int(raw)

# --- Evaluation Limits ---
MAX_DICE_COUNT = read_positive_int('CALC_MAX_DICE', 999_999)
ROLL_TRACE_MAX_CHARS = read_positive_int('CALC_ROLL_TRACE_CHARS', 80)
ROLL_TRACE_MAX_DICE = read_positive_int('CALC_ROLL_TRACE_DICE', 8)
MAX_DEPTH = read_positive_int('CALC_MAX_DEPTH', 100)
MAX_EXPRESSION_LENGTH = read_positive_int('CALC_MAX_LENGTH', 1000)

# --- Logging Configuration ---
LOG_LEVEL = os.getenv('CALC_LOG_LEVEL', 'WARNING').strip().upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(funcName)s:%(lineno)d] - %(message)s'
LOG_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
LOG_BACKUP_COUNT = 2
