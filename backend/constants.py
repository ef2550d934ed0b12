"""
Application-wide constants and configuration keys.

This module centralizes all magic strings and numbers used throughout the application
to improve maintainability and reduce duplication.
"""


class ServerConfig:
    """Server configuration constants"""

    HOST = "127.0.0.1"
    PORT = 8080

    @classmethod
    def url(cls) -> str:
        """Get the full server URL"""
        return f"http://{cls.HOST}:{cls.PORT}"


class DatabaseDefaults:
    """Connection pool defaults for file-backed databases"""

    POOL_SIZE = 5
    MAX_OVERFLOW = 10
    POOL_RECYCLE_SECONDS = 3600
    SQLITE_BUSY_TIMEOUT_MS = 5000


class RandomDefaults:
    """
    Defaults for random entity generation.

    MAX_DEPTH bounds how far nested relationships are followed: the top-level
    entity is depth 0, so a depth of 1 fills its many-to-one references with
    scalar-only entities and stops there.
    """

    MAX_DEPTH = 1
    COLLECTION_SIZE = (0, 0)
    STRING_LENGTH = 20
    TEXT_LENGTH = 200
    INT_MIN = 0
    INT_MAX = 10_000
    SMALL_INT_MAX = 32_767
    BINARY_LENGTH = 16


class LoggingDefaults:
    """Log file rotation settings"""

    FILE_NAME = "backend.log"
    MAX_BYTES = 10 * 1024 * 1024  # 10MB
    BACKUP_COUNT = 5
    FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class HTTPStatus:
    """HTTP status codes used throughout the application"""

    # Success
    CREATED = 201
    NO_CONTENT = 204

    # Client Errors
    BAD_REQUEST = 400
    NOT_FOUND = 404
    CONFLICT = 409

    # Server Errors
    INTERNAL_SERVER_ERROR = 500
