"""
Domain layer - Registration business logic with zero framework imports.

This package contains the event registration workflow, the eligibility
rules, team roster handling and profile synchronization. It defines its
own port interfaces so that the data store, identity provider and
notification transports stay swappable adapters.
"""

from .eligibility import Eligibility, check_eligibility
from .events import Event, EventMode
from .exceptions import (
    DuplicateKeyError,
    IdentityError,
    InvalidTeam,
    NotEligible,
    ProfileError,
    RegistrationError,
    StoreError,
)
from .identity import IdentitySession
from .ports import (
    DataStore,
    EligibilityReason,
    EmailSender,
    Identity,
    IdentityProvider,
    InAppNotifier,
    RegistrationStatus,
    WorkflowState,
)
from .profile import ProfileEditor, ProfileService, UserProfile
from .registration import RegistrationForm, RegistrationView, RegistrationWorkflow
from .team import TeamRoster

__all__ = [
    "DataStore",
    "DuplicateKeyError",
    "Eligibility",
    "EligibilityReason",
    "EmailSender",
    "Event",
    "EventMode",
    "Identity",
    "IdentityError",
    "IdentityProvider",
    "IdentitySession",
    "InAppNotifier",
    "InvalidTeam",
    "NotEligible",
    "ProfileEditor",
    "ProfileError",
    "ProfileService",
    "RegistrationError",
    "RegistrationForm",
    "RegistrationStatus",
    "RegistrationView",
    "RegistrationWorkflow",
    "StoreError",
    "TeamRoster",
    "UserProfile",
    "WorkflowState",
    "check_eligibility",
]
