class NotificationError(Exception):
    """Base exception for notification collaborator errors"""
    pass


class NotificationTransportError(NotificationError):
    """Exception when the notification endpoint cannot be reached"""
    pass


class NotificationRejectedError(NotificationError):
    """Exception when the notification endpoint refuses a request"""
    pass


class UnknownTemplateError(NotificationError):
    """Exception for email templates the collaborator does not offer"""
    pass


class ReleaseNotAuthorizedError(Exception):
    """Exception when a trusted contact may not release messages"""
    pass


class ConfigurationError(Exception):
    """Exception for configuration-related errors"""
    pass


class TrustedContactNotFoundError(Exception):
    """Exception when a trusted contact does not exist for the requesting owner"""
    pass


class ContactVerificationError(Exception):
    """Exception for unknown, already used or expired verification tokens"""
    pass
