"""Top-level services package.

Holds the user-facing message catalogue and the service container
(``kidsfind.services.container``), which is imported from its own module.
"""

from .error_messages import NotificationTexts, ServiceErrorMessages, SuccessMessages

__all__ = [
    "ServiceErrorMessages",
    "SuccessMessages",
    "NotificationTexts",
]
