"""Errors raised while reading a BIDS directory into a SEPIA file list."""


class SepiaBidsError(ValueError):
    """Base class for input problems that stop a conversion."""


class MissingInputError(SepiaBidsError):
    """Raised when no magnitude, phase or JSON file is found."""

    def __init__(self, modality, key='part-mag', kind='NIFTI'):
        self.modality = modality
        super().__init__(
            f"No {modality} file is found. For BIDS compatibility, make sure the {modality} {kind} has the key '{key}'."
        )


class NoEchoKeyError(SepiaBidsError):
    """Raised when none of the files carries the BIDS 'echo' key."""

    def __init__(self, files=None):
        self.files = list(files or [])
        super().__init__("No files contain BIDS key 'echo-' in the filename.")


class MixedAcquisitionError(SepiaBidsError):
    """Raised when files of one modality disagree outside the 'echo' key."""

    def __init__(self, first, other):
        self.first = first
        self.other = other
        super().__init__(
            "It seems your BIDS directory contains multiple GRE acquisitions. "
            f"For example, {first} and {other} do not have consistent filenames other than the 'echo' key."
        )


class CountMismatchError(SepiaBidsError):
    """Raised when the number of magnitude and phase echoes differ."""

    def __init__(self, num_mag, num_phase):
        self.num_mag = num_mag
        self.num_phase = num_phase
        super().__init__(
            f"Numbers of files between magnitude ({num_mag}) and phase ({num_phase}) data do not match."
        )


class UnsupportedDimensionalityError(SepiaBidsError):
    def __init__(self, filename, ndim, max_ndim=4):
        self.filename = filename
        self.ndim = ndim
        super().__init__(
            f"Input NIfTI volumes with more than {max_ndim} dimensions are not supported here ({filename} has {ndim})."
        )


class EchoIndexGapError(SepiaBidsError):
    """Raised when echo indices are not exactly 1..N."""

    def __init__(self, message, files=None):
        self.files = list(files or [])
        super().__init__(message)


class ShapeMismatchError(SepiaBidsError):
    def __init__(self, filename, shape, expected, reference="the first loaded echo"):
        self.filename = filename
        super().__init__(
            f"{filename} has shape {tuple(shape)} but {reference} has shape {tuple(expected)}."
        )


class MissingMetadataError(SepiaBidsError):
    """Raised when a JSON sidecar lacks a field the SEPIA header needs."""

    def __init__(self, filename, field):
        self.filename = filename
        self.field = field
        super().__init__(f"JSON sidecar {filename} does not contain '{field}'.")
