"""Constants for treesnap."""

import os

# Application identity (shown in generated snapshots)
APP_NAME = "treesnap"
APP_LINK = "https://github.com/treesnap/treesnap"

# Version
TREESNAP_VERSION = "0.1.0"

# Configuration file looked up in the working directory
CONFIG_FILE = ".treesnap.yaml"

# Gitignore-style exclusion file looked up in the scanned root
IGNORE_FILE = ".treesnapignore"

# Template marker that splits header and footer
DIR_DATA_MARKER = "[DIR DATA]"

# Directory sets at or below this size are scanned sequentially
PARALLEL_THRESHOLD = 10

# Minimum seconds between progress reports
PROGRESS_INTERVAL = 0.05

# Serializer buffer size (characters) before flushing to the sink
CHUNK_SIZE = 10240

# Streaming read size for hashing
HASH_CHUNK_SIZE = 8192

# Bounded queue size for batch integrity validation
VALIDATION_QUEUE_SIZE = 2000


def default_concurrency() -> int:
    """Default worker count for per-directory scanning."""
    return max(1, min(os.cpu_count() or 1, 4))
