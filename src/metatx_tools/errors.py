# metatx_tools/errors.py
"""Exception types raised by metatx_tools."""


class MetatxError(Exception):
    """Base class for metatx_tools errors."""


class InsufficientGroupsError(MetatxError, ValueError):
    """A statistical test was requested on fewer than 2 distinct groups."""

    def __init__(self, attribute, n_groups):
        self.attribute = attribute
        self.n_groups = n_groups
        super().__init__(
            f"Attribute '{attribute}' has {n_groups} distinct value(s); at least 2 are required"
        )


class ZeroReadDepthError(MetatxError, ValueError):
    """One or more samples have a zero or missing total read depth."""

    def __init__(self, samples):
        self.samples = list(samples)
        preview = ", ".join(str(s) for s in self.samples[:10])
        if len(self.samples) > 10:
            preview += ", ..."
        super().__init__(
            f"Total read depth is zero or missing for {len(self.samples)} sample(s): {preview}"
        )


class StudyNotFoundError(MetatxError, FileNotFoundError):
    """No serialized dataset exists for the requested study."""
