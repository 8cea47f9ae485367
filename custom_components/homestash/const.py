"""Constants for the Homestash integration.

Defines the integration domain, the public integration version and shared
limits used by model validation.
"""

# Integration domain used across all modules and WebSocket command types
DOMAIN: str = "homestash"

# Public integration version (kept in sync with manifest.json)
INTEGRATION_VERSION: str = "0.1.0"

# Maximum length for user-visible names (items, spaces, bundles, usernames)
NAME_MAX_LENGTH: int = 120
