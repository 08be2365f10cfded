"""warden.core package."""
