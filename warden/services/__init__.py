"""warden.services package."""
