#!/usr/bin/env python3
# entrypoint_worker.py
"""
Точка входа для MaintenanceWorker.
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

from src.common.logger import setup_logging
from src.worker.runner import main


if __name__ == "__main__":
    setup_logging()
    main()
