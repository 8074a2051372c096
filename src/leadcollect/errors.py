"""Failure taxonomy for the LeadCollect connector.

None of these ever escape a lifecycle handler: each side effect converts
them into a logged, per-step result so the host transaction always
completes.
"""


class LeadCollectError(Exception):
    """Base class for connector failures."""


class DecodeError(LeadCollectError):
    """A persisted cart payload could not be read in any known format.

    The cart is skipped and never retried.
    """


class ReferenceNotFound(LeadCollectError, LookupError):
    """A referenced product or promotion does not exist.

    Only the affected line item or field is dropped.
    """


class DeliveryError(LeadCollectError):
    """A webhook attempt failed before a response could be judged."""


class TransportError(DeliveryError):
    """The HTTP request never produced a response."""


class ConfigError(LeadCollectError):
    """The webhook is disabled or not fully configured."""


class CouponIssuanceError(LeadCollectError):
    """The promotion engine could not issue a recovery code."""
