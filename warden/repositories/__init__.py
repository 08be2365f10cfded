"""warden.repositories package."""
