"""SQLite database schema definitions."""

SCHEMA_SQL = """
-- Optional body metrics used by the estimated breakdown
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id INTEGER PRIMARY KEY,
    height_cm REAL,
    age REAL,
    sex TEXT CHECK(sex IN ('male', 'female') OR sex IS NULL),
    activity TEXT NOT NULL DEFAULT 'sedentary'
        CHECK(activity IN ('sedentary', 'light', 'moderate', 'active', 'very_active')),
    tdee REAL,
    keto_adapted TEXT NOT NULL DEFAULT 'none'
        CHECK(keto_adapted IN ('none', 'sometimes', 'consistent')),
    start_in_ketosis BOOLEAN NOT NULL DEFAULT FALSE,
    pre_fast_protein_grams REAL NOT NULL DEFAULT 0,
    carb_status TEXT NOT NULL DEFAULT 'normal'
        CHECK(carb_status IN ('low', 'normal', 'high')),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Fasting sessions (end_time NULL while active)
CREATE TABLE IF NOT EXISTS fasts (
    fast_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,
    duration_hours REAL,
    planned_duration_hours REAL,
    weight_lbs REAL,
    body_fat_pct REAL,
    source TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_fasts_user_start ON fasts(user_id, start_time);

-- Weigh-ins; at most one canonical entry per (user_id, local_date)
CREATE TABLE IF NOT EXISTS body_log_entries (
    entry_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    fast_id INTEGER,
    logged_at TEXT NOT NULL,
    local_date TEXT NOT NULL,
    timezone_offset_minutes INTEGER,
    time_zone TEXT,
    weight_lbs REAL NOT NULL,
    body_fat_pct REAL,
    entry_tag TEXT NOT NULL DEFAULT 'ad_hoc',
    source TEXT DEFAULT 'manual',
    notes TEXT,
    is_canonical BOOLEAN NOT NULL DEFAULT FALSE,
    canonical_status TEXT NOT NULL DEFAULT 'auto'
        CHECK(canonical_status IN ('auto', 'manual')),
    canonical_reason TEXT,
    canonical_override_at TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (fast_id) REFERENCES fasts(fast_id)
);

CREATE INDEX IF NOT EXISTS idx_body_log_user_date ON body_log_entries(user_id, local_date);
CREATE INDEX IF NOT EXISTS idx_body_log_fast ON body_log_entries(fast_id);
CREATE INDEX IF NOT EXISTS idx_body_log_user_logged ON body_log_entries(user_id, logged_at);
"""


def get_schema_sql() -> str:
    """Return the complete schema SQL."""
    return SCHEMA_SQL
