"""ID generation utilities."""

import uuid


def generate_id(prefix: str, length: int = 12) -> str:
    """Generate a unique ID with the given prefix.

    Format: {prefix}_{uuid_hex[:length]}
    Example: mem_a1b2c3d4e5f6

    Args:
        prefix: The prefix for the ID (e.g., "mem", "cons", "task")
        length: Number of hex characters from UUID (default: 12)

    Returns:
        Unique ID string
    """
    return f"{prefix}_{uuid.uuid4().hex[:length]}"
