import os
import glob
import logging
from datetime import datetime

_logger = None
_traffic_logger = None
traffic_log_file = None

def setup_logging(log_dir="logs", clear_old=False, debug=False):
    global _logger, _traffic_logger, traffic_log_file

    os.makedirs(log_dir, exist_ok=True)

    if clear_old:
        clear_old_logs(log_dir)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    general_log_file = os.path.join(log_dir, f"vara-client_{timestamp}.log")
    traffic_log_file = os.path.join(log_dir, f"vara-traffic_{timestamp}.log")

    # Main logger
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(general_log_file, encoding="utf-8"),
            logging.StreamHandler()
        ]
    )

    _logger = logging.getLogger()
    _logger.debug(f"Log file created: {general_log_file}")
    _logger.debug(f"Modem traffic will be written to: {traffic_log_file}")
    _logger.debug(f"Logging level set to: {'DEBUG' if debug else 'INFO'}")

    # Traffic logger (file only): one line per command sent or event received
    _traffic_logger = logging.getLogger("traffic")
    _traffic_logger.setLevel(logging.INFO)

    traffic_handler = logging.FileHandler(traffic_log_file, encoding="utf-8")
    traffic_handler.setFormatter(logging.Formatter('%(asctime)s %(message)s'))
    _traffic_logger.addHandler(traffic_handler)
    _traffic_logger.propagate = False  # Don't send to root logger

    return _logger, traffic_log_file

def get_logger():
    if _logger is None:
        raise RuntimeError("Logger has not been initialized. Call setup_logging() first.")
    return _logger

def get_traffic_logger():
    if _traffic_logger is None:
        raise RuntimeError("Traffic logger not initialized. Call setup_logging() first.")
    return _traffic_logger

def clear_old_logs(log_dir: str):
    if not os.path.exists(log_dir):
        return

    deleted = 0

    for file in glob.glob(os.path.join(log_dir, "*.log")):
        try:
            os.remove(file)
            deleted += 1
        except OSError as e:
            print(f"Failed to delete {file}: {e}")

    print(f"Cleared {deleted} old log files.")
