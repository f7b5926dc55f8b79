# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting without opening src/upkeep/config.py.
"""

ENV_VARS = {
    # App / logging
    "UPKEEP_APP_NAME": "App display name (default: upkeep).",
    "UPKEEP_LOG_LEVEL": "Console logging level (default: INFO).",
    "UPKEEP_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Record store (gitignored paths)
    "UPKEEP_DATA_DIR": "Local data directory for logs and the database (default: .local/upkeep).",
    "UPKEEP_RECORDS_DB_PATH": "Record store SQLite path (default: <data_dir>/records.sqlite3).",
    "UPKEEP_TASKS_COLLECTION": "Collection holding maintenance tasks (default: maintenanceSchedule).",
    "UPKEEP_MACHINES_COLLECTION": "Collection holding machines (default: machines).",
    # Early-completion policies
    "UPKEEP_CONFIRM_EARLY_COMPLETION": "Ask for confirmation before completing a task that is not due (default: true).",
    "UPKEEP_ALLOW_EARLY_MARK": "false => refuse completion while a task is farther than its threshold from due (default: true).",
    "UPKEEP_EARLY_MARK_THRESHOLDS": "Per-frequency thresholds in days (default: Weekly=2,Monthly=7,Half-Year=30,Yearly=30).",
}
