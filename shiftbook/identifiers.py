from uuid import UUID


def to_uuid(value) -> UUID | None:
    """Convert a string (or UUID) to UUID, returning None on failure."""
    if isinstance(value, UUID):
        return value
    if not value:
        return None
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        return None
