"""Exception hierarchy for the link-node engine."""


class LinkNodeError(Exception):
    """Base class for all link-node errors."""


class ViewConfigError(LinkNodeError):
    """A view configuration string could not be parsed."""


class RelationshipFormatError(LinkNodeError):
    """An encoded relationship string is malformed."""


class LayoutFileError(LinkNodeError):
    """A layout file could not be read, written or parsed."""


class UnknownLayoutError(LinkNodeError):
    """A batch layout algorithm name is not recognized."""


class IngestionError(LinkNodeError):
    """A record file is missing, unreadable or has a malformed cell."""
