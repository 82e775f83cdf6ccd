# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKDECK_APP_NAME": "App display name (default: taskdeck).",
    "TASKDECK_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Front-ends
    "TASKDECK_CONSOLE_ENABLED": "Run the console REPL (true/false, default: true).",
    # Store
    "TASKDECK_CURRENT_USER_ID": "Id of the current user (default: user-1). Must exist in the users collection.",
    # Due-date sweep
    "TASKDECK_DUE_SWEEP_ENABLED": "Run the background due-date check (true/false, default: true).",
    "TASKDECK_DUE_SWEEP_INTERVAL_SECONDS": "Seconds between due-date checks (default: 86400).",
    # Paths
    "TASKDECK_DATA_DIR": "Local data root (default: .local/taskdeck).",
    "TASKDECK_STORAGE_DIR": "Where tasks/projects/notifications/users JSON live (default: <data_dir>/storage).",
    "TASKDECK_LOG_DIR": "Where taskdeck.log is written (default: <data_dir>).",
}
