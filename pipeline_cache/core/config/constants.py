"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the caching layer: key formats, blob markers and stage identifiers.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for wire formats
- Type-safe enums for stage tagging in logs
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Cache processing stages for structured logging.

    Format: {PREFIX}.{DESCRIPTIVE_NAME}
    - CACHE.*: cache service operations
    - REDIS.*: Redis client lifecycle and commands
    - PIPELINE.*: behaviors wrapped around request handlers
    """

    # Cache service
    CACHE_INIT = "CACHE.INIT"
    CACHE_GET = "CACHE.GET"
    CACHE_SET = "CACHE.SET"
    CACHE_REMOVE = "CACHE.REMOVE"
    CACHE_INVALIDATE = "CACHE.INVALIDATE"
    CACHE_CORRUPTED = "CACHE.CORRUPTED"

    # Redis client
    REDIS_INIT = "REDIS.INIT"
    REDIS_CONNECT = "REDIS.CONNECT"
    REDIS_DISCONNECT = "REDIS.DISCONNECT"
    REDIS_HEALTH = "REDIS.HEALTH"

    # Pipeline behaviors
    READ_PATH = "PIPELINE.READ_PATH"
    WRITE_PATH = "PIPELINE.WRITE_PATH"


# ============================================================================
# Key Formats
# ============================================================================

# Separator between version, feature and value in a wire key
KEY_SEPARATOR = ":"

# Tag sets live at "tag:{feature}"
TAG_SET_KEY_PREFIX = "tag"

# Characters a cache key value may never contain
WILDCARD_CHARACTERS = ("*",)

# ============================================================================
# Stored Blob Format
# ============================================================================

# First byte of every stored blob
NO_COMPRESSION_MARKER = 0x00
COMPRESSION_MARKER = 0x01

# zlib level 1 ~ "fastest"
COMPRESSION_LEVEL = 1

# ============================================================================
# TTLs
# ============================================================================

# Tag sets outlive their longest member by this many seconds
TAG_SET_TTL_MARGIN_SECONDS = 300

# ============================================================================
# Metric Buckets
# ============================================================================

OPERATION_DURATION_BUCKETS_MS = (0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 1000.0)
ENTRY_SIZE_BUCKETS_BYTES = (64, 256, 1024, 4096, 16384, 65536, 262144, 1048576)
COMPRESSION_RATIO_BUCKETS = (1.0, 1.5, 2.0, 3.0, 4.0, 6.0, 8.0, 12.0)
