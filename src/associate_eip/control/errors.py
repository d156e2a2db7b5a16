class AssociateEipError(Exception):
    """Base class for every failure that aborts the run."""


class InputError(AssociateEipError, ValueError):
    """User-data could not be turned into a list of actions."""


class MalformedInput(InputError):
    pass


class AmbiguousEipSpec(InputError):
    pass


class InvalidIdentifier(InputError):
    pass


class MetadataUnavailable(AssociateEipError):
    pass


class SelectionError(AssociateEipError):
    """No address could be picked for a filtered EIP action."""


class NoAddressesFound(SelectionError):
    pass


class AllAddressesInUse(SelectionError):
    pass


class ControlPlaneError(AssociateEipError):
    """EC2 rejected a mutating call."""


class AssociationConflict(ControlPlaneError):
    pass


class AssignmentRejected(ControlPlaneError):
    pass
