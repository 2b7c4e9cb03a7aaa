# archive_viewer/database/schema.py

# Tables of a post-archiver archive as read by the viewer. The archiving
# process owns and migrates them; the viewer only creates them for a fresh
# archive (development and tests).
ARCHIVE_SCHEMA = """
-- Archive format version written by the archiver
CREATE TABLE IF NOT EXISTS post_archiver_meta (
    version TEXT NOT NULL
);

-- Named integer flags, such as the full-text search toggle
CREATE TABLE IF NOT EXISTS features (
    name TEXT PRIMARY KEY,
    value INTEGER NOT NULL DEFAULT 0,
    extra TEXT NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS platforms (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);

-- links: JSON array of {"name", "url"}
-- thumb: file_metas.id, not enforced so it may dangle
CREATE TABLE IF NOT EXISTS authors (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    links TEXT NOT NULL DEFAULT '[]',
    thumb INTEGER,
    updated TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    platform INTEGER REFERENCES platforms(id) ON DELETE CASCADE,
    UNIQUE (name, platform)
);

CREATE TABLE IF NOT EXISTS collections (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    source TEXT UNIQUE,
    thumb INTEGER
);

-- content: JSON array of {"Text": "..."} / {"File": id}
-- comments: JSON array of {"user", "text", "replies"}
CREATE TABLE IF NOT EXISTS posts (
    id INTEGER PRIMARY KEY,
    source TEXT UNIQUE,
    title TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '[]',
    thumb INTEGER,
    comments TEXT NOT NULL DEFAULT '[]',
    updated TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    published TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    platform INTEGER REFERENCES platforms(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS file_metas (
    id INTEGER PRIMARY KEY,
    filename TEXT NOT NULL,
    author INTEGER NOT NULL REFERENCES authors(id) ON DELETE CASCADE,
    post INTEGER NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    mime TEXT NOT NULL,
    extra TEXT NOT NULL DEFAULT '{}',
    UNIQUE (post, filename)
);

-- Names an author goes by on other platforms
CREATE TABLE IF NOT EXISTS author_aliases (
    source TEXT NOT NULL,
    platform INTEGER NOT NULL REFERENCES platforms(id) ON DELETE CASCADE,
    target INTEGER NOT NULL REFERENCES authors(id) ON DELETE CASCADE,
    link TEXT,
    PRIMARY KEY (source, platform)
);

-- Many-to-many associations
CREATE TABLE IF NOT EXISTS author_posts (
    author INTEGER NOT NULL REFERENCES authors(id) ON DELETE CASCADE,
    post INTEGER NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    PRIMARY KEY (author, post)
);

CREATE TABLE IF NOT EXISTS post_tags (
    post INTEGER NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    tag INTEGER NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    PRIMARY KEY (post, tag)
);

CREATE TABLE IF NOT EXISTS collection_posts (
    collection INTEGER NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
    post INTEGER NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    PRIMARY KEY (collection, post)
);

CREATE INDEX IF NOT EXISTS idx_posts_updated ON posts(updated);
CREATE INDEX IF NOT EXISTS idx_posts_platform ON posts(platform);
CREATE INDEX IF NOT EXISTS idx_authors_updated ON authors(updated);
CREATE INDEX IF NOT EXISTS idx_author_aliases_target ON author_aliases(target);
CREATE INDEX IF NOT EXISTS idx_author_posts_post ON author_posts(post);
CREATE INDEX IF NOT EXISTS idx_post_tags_tag ON post_tags(tag);
CREATE INDEX IF NOT EXISTS idx_collection_posts_post ON collection_posts(post);
CREATE INDEX IF NOT EXISTS idx_file_metas_post ON file_metas(post);
"""

FULL_TEXT_TABLE = "_posts_fts"

FULL_TEXT_CREATE = f"""
CREATE VIRTUAL TABLE IF NOT EXISTS {FULL_TEXT_TABLE}
USING fts5(title, content, content=posts, content_rowid=id)
"""

FULL_TEXT_DROP = f"DROP TABLE IF EXISTS {FULL_TEXT_TABLE}"

FULL_TEXT_REBUILD = f"INSERT INTO {FULL_TEXT_TABLE}({FULL_TEXT_TABLE}) VALUES('rebuild')"
