from datetime import datetime
from pathlib import Path
from typing import Optional

from ltrkit.utils.config import Config


def write_message_to_log_file(message: str, cfg: Optional[Config] = None) -> None:
    """Appends a timestamped message to the configured LOG_PATH."""
    cfg = cfg or Config(load=True)
    if not cfg.LOG_PATH:
        return

    log_path = Path(cfg.LOG_PATH)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, 'a') as log_file:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        log_file.write(f"[{timestamp}]  {message}\n")
