"""
External integration exceptions.
"""


class SemanticStoreError(Exception):
    """Exception raised when the semantic store fails."""
    pass


class NotificationError(Exception):
    """Exception raised when a notification webhook call fails."""
    pass
