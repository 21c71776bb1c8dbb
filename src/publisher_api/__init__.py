"""Publisher back-office authorization service."""
