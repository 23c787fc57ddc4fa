from .sender import (
    EmailMessage,
    NotificationSender,
    NotificationError,
    LoggingEmailSender,
    ResendEmailSender,
    get_notification_sender,
)
