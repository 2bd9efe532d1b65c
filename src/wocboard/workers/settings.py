"""arq worker settings module.

Import path for arq CLI: arq wocboard.workers.settings.WorkerSettings
"""

from __future__ import annotations

from wocboard.github.worker import SyncWorkerSettings as WorkerSettings

__all__ = ["WorkerSettings"]
