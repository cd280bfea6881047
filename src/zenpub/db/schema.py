# ABOUTME: SQL DDL statements for the ZenPub local cache database.
# ABOUTME: Defines the user state, project data, and file history stores plus schema versioning.

CURRENT_KEY = "current"

SCHEMA_V1 = """
-- Single-record stores keyed by 'current'; data holds the JSON document
CREATE TABLE user_state (
    id             TEXT PRIMARY KEY,
    data           TEXT NOT NULL,
    last_open_time REAL NOT NULL
);

CREATE INDEX idx_user_state_last_open_time ON user_state(last_open_time);

CREATE TABLE project_data (
    id            TEXT PRIMARY KEY,
    data          TEXT NOT NULL,
    last_modified REAL NOT NULL
);

CREATE INDEX idx_project_data_last_modified ON project_data(last_modified);

-- Append-only log of opened/imported files
CREATE TABLE file_history (
    id        INTEGER PRIMARY KEY AUTOINCREMENT,
    file_path TEXT NOT NULL,
    timestamp REAL NOT NULL
);

CREATE INDEX idx_file_history_timestamp ON file_history(timestamp);
CREATE INDEX idx_file_history_file_path ON file_history(file_path);

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""
