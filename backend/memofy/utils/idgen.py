"""ID Generation Utilities"""
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'LCK', 'ACT')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('LCK')
        'LCK-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_lock_id() -> str:
    """Generate resource lock ID"""
    return generate_id("LCK")


def generate_activity_id() -> str:
    """Generate activity log entry ID"""
    return generate_id("ACT")


def generate_memo_id() -> str:
    """Generate memo ID"""
    return generate_id("MEMO")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
