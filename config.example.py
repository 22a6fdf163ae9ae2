# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "ALLOWANCE_APP_NAME": "App display name (default: allowance-tasks).",
    "ALLOWANCE_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "ALLOWANCE_DATA_DIR": "Local data directory (default: .local/allowance).",
    "ALLOWANCE_DB_PATH": "TaskStore SQLite path (default: <data_dir>/allowance.sqlite3).",
    "ALLOWANCE_LOG_DIR": "Directory for allowance-tasks.log (default: <data_dir>).",
    # Generator
    "ALLOWANCE_TIMEZONE": "IANA timezone used for 'today' and creation anniversaries (default: UTC).",
    "ALLOWANCE_RUN_AT": "Daily sweep time HH:MM for `allowance-tasks schedule` (default: 00:05).",
    "ALLOWANCE_RUN_ON_START": "Sweep once immediately when the scheduler starts (true/false, default: true).",
    "ALLOWANCE_SWEEP_WORKERS": "Threads used to materialize instances (default: 1 = sequential).",
    # HTTP
    "ALLOWANCE_HTTP_HOST": "Bind host for `allowance-tasks serve` (default: 127.0.0.1).",
    "ALLOWANCE_HTTP_PORT": "Bind port for `allowance-tasks serve` (default: 8080).",
}
