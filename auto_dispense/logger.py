# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# Do not replicate or redistribute without permission
# All rights reserved.
# ------------------------------------------------------------------------------

import csv, logging, time
from pathlib import Path
from datetime import datetime

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single console handler on the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    logging.getLogger("serial").setLevel(logging.WARNING)


class RunLogger:
    """CSV transcript of every device step and batch outcome for one run.

    Each row is also echoed at DEBUG through the module logger with its
    elapsed time, so the console log and the CSV line up.
    """

    HEADER = ['Time_s','Component','Action','Parameters','Output','Notes']

    def __init__(self, out_dir: str, run_name: str):
        Path(out_dir).mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime('%Y_%m_%d_%H-%M-%S')
        self.path = Path(out_dir) / f"{ts}_{run_name}.csv"
        self._fh = open(self.path, 'w', newline='', encoding='utf-8')
        self._w = csv.writer(self._fh)
        self._w.writerow(self.HEADER)
        self._t0 = time.monotonic()
        logger.info("Run log: %s", self.path)

    def write(self, comp, act, params, out, notes=""):
        if self._fh.closed:
            logger.warning("Run log %s already closed, dropping %s %s", self.path, comp, act)
            return
        t = round(time.monotonic() - self._t0, 2)
        self._w.writerow([t, comp, act, params, out, notes])
        self._fh.flush()
        logger.debug("[%7.2f] %-12s | %-18s | %s", t, comp, act, out)

    def close(self):
        if not self._fh.closed:
            self._fh.close()
