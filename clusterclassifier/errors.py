"""
Error types raised while evaluating classifiers

None of these abort a pass: they are caught where a constraint is evaluated
and turned into failure messages on the classifier status.
"""


class ClassifierError(Exception):
    """Base class for classifier evaluation errors"""


class ClassifierValidationError(ClassifierError, ValueError):
    """A classifier (or one of its parts) was built with invalid values"""


class PredicateEvaluationError(ClassifierError):
    """The script evaluator failed or returned an unexpected result shape"""


class UnsupportedFieldError(ClassifierError):
    """A field filter references a field that cannot be selected on"""

    def __init__(self, field: str, kind: str, supported):
        self.field = field
        self.kind = kind
        self.supported = sorted(supported)
        super().__init__(
            f"field {field!r} is not supported for kind {kind} "
            f"(supported: {', '.join(self.supported)})"
        )


class VersionParseError(ClassifierError):
    """A version string could not be parsed as major.minor.patch"""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"cannot parse version {version!r}")


class InventoryError(ClassifierError):
    """A resource inventory or cluster version lookup failed"""
