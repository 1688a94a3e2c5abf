# catalog/logger.py

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
import json
from datetime import datetime, timezone

from catalog.config import get_env, get_log_dir, get_log_level

SERVICE_NAME = "product-catalog"

# Per environment: (root level, log file, file level, max bytes, backups)
LOG_PROFILES = {
  "testing": (logging.DEBUG, "test.log", logging.DEBUG, 1*1024*1024, 1),
  "development": (logging.DEBUG, "app.log", logging.INFO, 5*1024*1024, 3),
  "production": (logging.INFO, "app.log", logging.INFO, 5*1024*1024, 3),
}


class JsonFormatter(logging.Formatter):
  """
  One JSON object per line. Values passed as extra={"context": {...}}
  (sync counts, cache keys, product ids) are merged under "context".
  """
  def __init__(self, env: str = "development"):
    super().__init__()
    self.env = env

  def format(self, record):
    log_record = {
      "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
      "service": SERVICE_NAME,
      "env": self.env,
      "level": record.levelname,
      "logger": record.name,
      "message": record.getMessage(),
      "file": record.pathname,
      "line": record.lineno,
      "function": record.funcName
    }

    context = getattr(record, "context", None)
    if isinstance(context, dict) and context:
      log_record["context"] = context

    if record.exc_info:
      log_record["exception"] = self.formatException(record.exc_info)

    return json.dumps(log_record, default=str)


def configure_logging():
  """
  Route every catalog logger to stdout (errors only) and a rotating JSON file
  chosen by APP_ENV. LOG_LEVEL overrides the root level.
  """
  env = get_env()
  root_level, file_name, file_level, max_bytes, backups = LOG_PROFILES.get(env, LOG_PROFILES["production"])

  override = get_log_level()
  if override:
    root_level = logging.getLevelName(override)
    if not isinstance(root_level, int):
      raise ValueError(f"Unknown LOG_LEVEL '{override}'")

  log_dir = get_log_dir()
  os.makedirs(log_dir, exist_ok=True)

  formatter = JsonFormatter(env)

  # Root logger
  logger = logging.getLogger()
  logger.setLevel(root_level)

  # Clear previous handler
  if logger.hasHandlers():
    logger.handlers.clear()

  console_handler = logging.StreamHandler(sys.stdout)
  console_handler.setFormatter(formatter)
  console_handler.setLevel(logging.ERROR)
  logger.addHandler(console_handler)

  file_handler = RotatingFileHandler(os.path.join(log_dir, file_name), maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
  file_handler.setFormatter(formatter)
  file_handler.setLevel(file_level)
  logger.addHandler(file_handler)

  # SQL echo and HTTP client chatter stay out of the catalog log
  for noisy in ("sqlalchemy.engine", "urllib3"):
    logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name):
  """
  Returns a logger object with specific name.
  Before call this function configure_logging() must be called.
  """
  return logging.getLogger(name)
