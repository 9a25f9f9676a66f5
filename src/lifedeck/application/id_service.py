"""Service for minting card instance IDs."""

from ulid import ULID


def generate_card_id() -> str:
    """Generate a unique, time-sortable card ID using ULID."""
    return f"card_{ULID()}"
