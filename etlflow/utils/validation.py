"""
Input validation utilities for the control surface.

Provides reusable checks for pipeline names, query limits and SQL
identifiers so that values coming from configuration files or the CLI
cannot reach a file path or an SQL statement unchecked.
"""

import re


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9_\-\.]+$')
_IDENTIFIER_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')

RESERVED_SQL_KEYWORDS = {
    "select", "insert", "update", "delete", "drop", "create", "alter",
    "table", "database", "index", "view", "user", "grant", "revoke"
}


def validate_pipeline_name(name: str, field_name: str = "name") -> str:
    """
    Validate a pipeline name.

    Pipeline names key the configuration store, the scheduler registry and
    the job history, so they must be non-empty strings of alphanumerics,
    hyphens, underscores and dots.

    Args:
        name: The pipeline name to validate
        field_name: Name of the field (for error messages)

    Returns:
        The validated name (stripped of whitespace)

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_pipeline_name("budget_etl")
        'budget_etl'
        >>> validate_pipeline_name("daily-load.v2")
        'daily-load.v2'
        >>> validate_pipeline_name("bad name!")  # doctest: +SKIP
        ValidationError: name contains invalid characters
    """
    if not name or not isinstance(name, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    name = name.strip()

    if not name:
        raise ValidationError(f"{field_name} cannot be empty or whitespace-only")

    if not _NAME_PATTERN.match(name):
        raise ValidationError(
            f"{field_name} contains invalid characters. "
            "Only alphanumeric, hyphens, underscores, and dots are allowed."
        )

    if len(name) > 255:
        raise ValidationError(f"{field_name} exceeds maximum length of 255 characters")

    return name


def validate_limit(limit: int, field_name: str = "limit", max_limit: int = 10000) -> int:
    """
    Validate a limit parameter for history queries.

    Args:
        limit: The limit value to validate
        field_name: Name of the field (for error messages)
        max_limit: Maximum allowed limit value

    Returns:
        The validated limit value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError(f"{field_name} must be an integer, got {type(limit).__name__}")

    if limit <= 0:
        raise ValidationError(f"{field_name} must be a positive integer, got {limit}")

    if limit > max_limit:
        raise ValidationError(f"{field_name} exceeds maximum of {max_limit}")

    return limit


def sanitize_sql_identifier(identifier: str, field_name: str = "identifier") -> str:
    """
    Sanitize an SQL identifier (table name, column name, etc.).

    Used for destination table names and record keys, which become column
    names in the upsert statement.

    Args:
        identifier: The identifier to sanitize
        field_name: Name of the field (for error messages)

    Returns:
        The validated identifier

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> sanitize_sql_identifier("budget_data")
        'budget_data'
        >>> sanitize_sql_identifier("table; DROP TABLE users;")  # doctest: +SKIP
        ValidationError: identifier contains invalid characters
    """
    if not identifier or not isinstance(identifier, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    identifier = identifier.strip()

    if not _IDENTIFIER_PATTERN.match(identifier):
        raise ValidationError(
            f"{field_name} contains invalid characters. "
            "SQL identifiers must start with a letter or underscore and contain only "
            "alphanumeric characters and underscores."
        )

    if len(identifier) > 63:  # PostgreSQL limit
        raise ValidationError(f"{field_name} exceeds PostgreSQL maximum length of 63 characters")

    if identifier.lower() in RESERVED_SQL_KEYWORDS:
        raise ValidationError(
            f"{field_name} '{identifier}' is a reserved SQL keyword. "
            "Please use a different name."
        )

    return identifier
