"""SQLite DDL shared by the job store and the theme catalog.

# ─── TABLES ──────────────────────────────────────────────────────────
#
#   documents ─┬─< embedding_jobs      (1:1, UNIQUE document_id)
#              ├─< chunk_embeddings    (UNIQUE document_id, chunk_index, version)
#              └─< document_themes >── themes   (PK document_id, theme_code)
#
# Every owned row cascades with its document.  Timestamps are ISO-8601
# UTC strings with microseconds, written by Python, so lexical order is
# chronological order.
# ──────────────────────────────────────────────────────────────────────
"""

CREATE_DOCUMENTS_TABLE = """\
CREATE TABLE IF NOT EXISTS documents (
    id                      TEXT    PRIMARY KEY,
    raw_text                TEXT,
    language                TEXT,
    embedding_status        TEXT    NOT NULL DEFAULT 'pending'
        CHECK (embedding_status IN ('pending', 'processing', 'completed', 'failed', 'skipped')),
    embedding_error         TEXT,
    embedding_attempts      INTEGER NOT NULL DEFAULT 0 CHECK (embedding_attempts >= 0),
    embedding_started_at    TEXT,
    embedding_processed_at  TEXT,
    created_at              TEXT    NOT NULL
);
"""

CREATE_JOBS_TABLE = """\
CREATE TABLE IF NOT EXISTS embedding_jobs (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id    TEXT    NOT NULL UNIQUE REFERENCES documents(id) ON DELETE CASCADE,
    status         TEXT    NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'processing', 'completed', 'failed')),
    priority       INTEGER NOT NULL DEFAULT 0,
    attempts       INTEGER NOT NULL DEFAULT 0 CHECK (attempts >= 0),
    max_attempts   INTEGER NOT NULL DEFAULT 3 CHECK (max_attempts >= 1),
    error_message  TEXT,
    scheduled_at   TEXT    NOT NULL,
    started_at     TEXT,
    completed_at   TEXT,
    claim_id       TEXT,
    created_at     TEXT    NOT NULL,
    CHECK (status <> 'processing' OR started_at IS NOT NULL)
);
"""

CREATE_CHUNK_EMBEDDINGS_TABLE = """\
CREATE TABLE IF NOT EXISTS chunk_embeddings (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id         TEXT    NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    chunk_index         INTEGER NOT NULL CHECK (chunk_index >= 0),
    chunk_text          TEXT    NOT NULL,
    token_count         INTEGER NOT NULL CHECK (token_count > 0),
    embedding           TEXT    NOT NULL,
    embedding_version   TEXT    NOT NULL,
    processing_time_ms  INTEGER NOT NULL DEFAULT 0,
    metadata            TEXT    NOT NULL DEFAULT '{}',
    created_at          TEXT    NOT NULL,
    UNIQUE (document_id, chunk_index, embedding_version)
);
"""

CREATE_THEMES_TABLE = """\
CREATE TABLE IF NOT EXISTS themes (
    code         TEXT PRIMARY KEY,
    label        TEXT NOT NULL,
    description  TEXT,
    embedding    TEXT,
    updated_at   TEXT
);
"""

CREATE_DOCUMENT_THEMES_TABLE = """\
CREATE TABLE IF NOT EXISTS document_themes (
    document_id   TEXT    NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    theme_code    TEXT    NOT NULL REFERENCES themes(code),
    rank          INTEGER NOT NULL CHECK (rank >= 1),
    similarity    REAL    NOT NULL CHECK (similarity >= 0.0 AND similarity <= 1.0),
    explanation   TEXT,
    chunk_index   INTEGER,
    extracted_at  TEXT    NOT NULL,
    PRIMARY KEY (document_id, theme_code)
);
"""

CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_jobs_poll ON embedding_jobs(status, priority DESC, scheduled_at);",
    "CREATE INDEX IF NOT EXISTS idx_jobs_started ON embedding_jobs(status, started_at);",
    "CREATE INDEX IF NOT EXISTS idx_documents_status ON documents(embedding_status);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunk_embeddings(document_id, chunk_index);",
    "CREATE INDEX IF NOT EXISTS idx_document_themes_rank ON document_themes(document_id, rank);",
]

ALL_TABLES = [
    CREATE_DOCUMENTS_TABLE,
    CREATE_JOBS_TABLE,
    CREATE_CHUNK_EMBEDDINGS_TABLE,
    CREATE_THEMES_TABLE,
    CREATE_DOCUMENT_THEMES_TABLE,
]
