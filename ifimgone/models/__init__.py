from ifimgone.models.profile import Profile
from ifimgone.models.recipient import Recipient
from ifimgone.models.message import Message, MessageRecipient
from ifimgone.models.inactivity_check import InactivityCheck
from ifimgone.models.activity_log import ActivityLog
from ifimgone.models.trusted_contact import TrustedContact

__all__ = [
    'Profile',
    'Recipient',
    'Message',
    'MessageRecipient',
    'InactivityCheck',
    'ActivityLog',
    'TrustedContact',
]
